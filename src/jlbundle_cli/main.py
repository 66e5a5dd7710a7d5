"""CLI entry point for jlbundle.

This module defines the main CLI group using the LazyGroup pattern so
that 'jlbundle --help' does not import the build machinery.
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import Any

import click
import rich_click as rclick
import structlog

from jlbundle_cli import __version__
from jlbundle_cli.output import set_no_color

# Configure rich-click for better help formatting
rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True


class LazyGroup(rclick.RichGroup):
    """Click group that loads commands lazily.

    Attributes:
        lazy_subcommands: Mapping of command names to module paths.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize LazyGroup.

        Args:
            *args: Positional arguments for parent class.
            lazy_subcommands: Mapping of command name to module path.
                Format: {"run": "jlbundle_cli.commands.run.run"}
            **kwargs: Keyword arguments for parent class.
        """
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        commands = set(super().list_commands(ctx))
        commands.update(self.lazy_subcommands.keys())
        return sorted(commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        cmd = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if cmd is not None:
            return cmd

        if cmd_name not in self.lazy_subcommands:
            return None

        module_path = self.lazy_subcommands[cmd_name]
        module_name, attr_name = module_path.rsplit(".", 1)
        mod = importlib.import_module(module_name)
        return getattr(mod, attr_name)  # type: ignore[no-any-return]


LAZY_COMMANDS = {
    "run": "jlbundle_cli.commands.run.run",
    "check": "jlbundle_cli.commands.check.check",
    "unpack": "jlbundle_cli.commands.unpack.unpack",
}


def configure_logging(verbose: bool = False) -> None:
    """Configure structlog to render to stderr.

    INFO and above by default; DEBUG with --verbose.
    """
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="jlbundle")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Show debug logs and Julia package manager output.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """jlbundle - Standalone application bundles for Julia projects.

    Validates a project layout, prepares dependencies and compiles every
    file under `apps/` with PackageCompiler.

    **Getting Started:**

    - `jlbundle check PROJECT_DIR` - Show the derived build plan
    - `jlbundle run PROJECT_DIR` - Install dependencies and compile all apps
    - `jlbundle run PROJECT_DIR --archive` - Also split bundles into 100MB chunks
    - `jlbundle unpack ARCHIVE_DIR DEST` - Reassemble a chunked bundle
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


if __name__ == "__main__":
    cli()
