"""Pre-flight checks and output directory preparation.

Pre-flight runs before a BuildContext exists and never touches the
filesystem. Preparation runs after the context is built and resets the
output directory on a best-effort basis.
"""

from __future__ import annotations

import shutil
import time
from collections.abc import Sequence
from pathlib import Path

import structlog

from jlbundle_core.context import BuildContext
from jlbundle_core.errors import PreflightError, PreparationWarning, ToolchainError
from jlbundle_core.models import PhaseResult
from jlbundle_core.toolchain import JuliaToolchain

logger = structlog.get_logger(__name__)

USAGE = "jlbundle run PROJECT_DIR"


def format_version(version: Sequence[int]) -> str:
    return ".".join(str(v) for v in version)


def check_arguments(args: Sequence[str]) -> Path:
    """Require exactly one positional argument, the project directory.

    Raises:
        PreflightError: On zero or more than one argument.
    """
    if len(args) != 1:
        raise PreflightError(
            f"Input project root directory missing i.e. '{USAGE}' "
            f"(expected 1 argument, got {len(args)})"
        )
    return Path(args[0])


def check_toolchain(
    toolchain: JuliaToolchain,
    minimum: Sequence[int] = (1, 11),
) -> tuple[int, int, int]:
    """Require an installed Julia at least as new as ``minimum``.

    Returns:
        The detected Julia version.

    Raises:
        PreflightError: If julia is missing or too old.
    """
    try:
        version = toolchain.version()
    except ToolchainError as e:
        raise PreflightError(
            f"Could not run '{toolchain.executable}'. Is Julia installed and on PATH?",
            internal_details=e.output or None,
        ) from e

    if version < tuple(minimum):
        raise PreflightError(
            f"Julia {format_version(minimum)} or newer required "
            f"(found {format_version(version)})"
        )
    return version


def run_preflight(
    args: Sequence[str],
    toolchain: JuliaToolchain,
    minimum: Sequence[int] = (1, 11),
) -> tuple[Path, tuple[int, int, int]]:
    """Validate the invocation and the Julia installation.

    Returns:
        Tuple of (project directory argument, detected Julia version).

    Raises:
        PreflightError: If either check fails.
    """
    project_dir = check_arguments(args)
    version = check_toolchain(toolchain, minimum)
    logger.info(
        "preflight_passed",
        project_dir=str(project_dir),
        julia_version=format_version(version),
    )
    return project_dir, version


def _check_manifest(ctx: BuildContext) -> None:
    if not ctx.manifest_file.is_file():
        raise PreparationWarning(
            f"{ctx.manifest_file} for {ctx.project_name} does not exist. Will continue..."
        )


def _reset_output_dir(output_dir: Path) -> str:
    if not output_dir.exists():
        try:
            output_dir.mkdir(parents=True)
        except OSError as e:
            raise PreparationWarning(
                f"Could not create {output_dir}, will try to continue...",
                internal_details=f"{type(e).__name__}: {e}",
            ) from e
        return f"Created {output_dir}"

    try:
        shutil.rmtree(output_dir)
        output_dir.mkdir()
    except OSError as e:
        raise PreparationWarning(
            f"Could not clean up {output_dir}, will try to continue...",
            internal_details=f"{type(e).__name__}: {e}",
        ) from e
    return f"Cleaned up {output_dir}"


def prepare_output(ctx: BuildContext) -> PhaseResult:
    """Check for a lock file and reset the output directory.

    A missing Manifest.toml and a failed cleanup are recorded as warnings;
    neither stops the run.

    Returns:
        PhaseResult named "prepare".
    """
    start_time = time.monotonic()
    log = logger.bind(component="validator", output_dir=str(ctx.output_dir))
    warnings: list[str] = []
    message = ""

    try:
        _check_manifest(ctx)
    except PreparationWarning as w:
        log.warning("manifest_missing", manifest=str(ctx.manifest_file))
        warnings.append(w.user_message)

    try:
        message = _reset_output_dir(ctx.output_dir)
    except PreparationWarning as w:
        log.warning("output_cleanup_failed", error=w.internal_details)
        warnings.append(w.user_message)

    duration_ms = int((time.monotonic() - start_time) * 1000)
    log.info("prepare_completed", warnings=len(warnings), duration_ms=duration_ms)

    result = PhaseResult.from_warnings(
        "prepare",
        warnings,
        message=message,
        details={"output_dir": str(ctx.output_dir)},
    )
    return result.model_copy(update={"duration_ms": duration_ms})
