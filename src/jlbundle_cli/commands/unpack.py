"""jlbundle unpack command - Reassemble a chunked bundle archive."""

from __future__ import annotations

from pathlib import Path

import click

from jlbundle_cli.commands.common import load_settings
from jlbundle_cli.errors import EXIT_SYSTEM_ERROR, exit_with_error, handle_bundle_error
from jlbundle_cli.output import success
from jlbundle_core import ArchivingError, restore_archive


@click.command()
@click.argument("archive_dir", type=click.Path(file_okay=False, path_type=Path))
@click.argument("destination", type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "--archive-name",
    type=str,
    default=None,
    help="Base name of the chunk files [default: tardisk]",
)
def unpack(archive_dir: Path, destination: Path, archive_name: str | None) -> None:
    """Concatenate the chunks in ARCHIVE_DIR and extract them into DESTINATION.

    Reverses `jlbundle run --archive`: chunks are joined in numeric
    order and the resulting tar.gz stream is extracted.

    Examples:

        jlbundle unpack build/myapp_archived /opt/apps
    """
    if not archive_dir.is_dir():
        exit_with_error(f"Directory not found: {archive_dir}", exit_code=EXIT_SYSTEM_ERROR)

    settings = load_settings(archive_name=archive_name)
    try:
        roots = restore_archive(archive_dir, destination, archive_name=settings.archive_name)
    except ArchivingError as e:
        handle_bundle_error(e)

    for root in roots:
        success(f"Restored {root}")
