"""Helpers shared by the run and check commands."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import click
from pydantic import ValidationError as PydanticValidationError

from jlbundle_cli.errors import handle_settings_error

if TYPE_CHECKING:
    from jlbundle_core import BuildContext, BundlerSettings, JuliaToolchain


def is_verbose(ctx: click.Context) -> bool:
    """Read the group-level --verbose flag (False when invoked standalone)."""
    obj = ctx.find_root().obj
    return bool(obj.get("verbose", False)) if isinstance(obj, dict) else False


def load_settings(**overrides: object) -> BundlerSettings:
    """Load BundlerSettings from the environment, applying CLI overrides.

    Raises:
        SystemExit: If the JLBUNDLE_* settings are invalid.
    """
    from jlbundle_core import BundlerSettings

    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        return BundlerSettings(**values)
    except PydanticValidationError as e:
        handle_settings_error(e)


def resolve_context(
    args: Sequence[str],
    settings: BundlerSettings,
    toolchain: JuliaToolchain,
    cpu_target: str | None = None,
) -> BuildContext:
    """Run pre-flight checks and derive the BuildContext.

    Raises:
        PreflightError: On bad arguments or an unsupported Julia.
        ContextError: On a bad project layout.
    """
    from jlbundle_core import build_context, run_preflight

    project_dir, version = run_preflight(args, toolchain, settings.min_version_tuple)
    return build_context(
        project_dir,
        julia_version=version,
        settings=settings,
        cpu_target=cpu_target,
    )
