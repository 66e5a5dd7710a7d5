"""Target compilation via PackageCompiler.

Each build target becomes one standalone application bundle under the
output directory. Targets compile sequentially; the first failure aborts
the remaining ones.
"""

from __future__ import annotations

import time
from pathlib import Path

import structlog

from jlbundle_core.context import BuildContext
from jlbundle_core.errors import CompilationError, MissingTargetError, ToolchainError
from jlbundle_core.models import PhaseResult, PhaseStatus
from jlbundle_core.toolchain import JuliaToolchain, julia_str

logger = structlog.get_logger(__name__)


def create_app_code(
    target: str,
    destination: Path,
    precompile_files: tuple[Path, ...],
    cpu_target: str,
) -> str:
    """Julia snippet invoking ``PackageCompiler.create_app`` for one target."""
    scripts = ", ".join(julia_str(p) for p in precompile_files)
    return (
        "using PackageCompiler; "
        f"create_app({julia_str(target)}, {julia_str(destination)}; "
        f"precompile_execution_file=String[{scripts}], "
        "force=true, "
        f"cpu_target={julia_str(cpu_target)})"
    )


class TargetCompiler:
    """Compiles every build target of a context.

    Attributes:
        ctx: Build context
        toolchain: Julia toolchain running PackageCompiler
        stream: Show compiler output on the terminal
    """

    def __init__(
        self,
        ctx: BuildContext,
        toolchain: JuliaToolchain,
        *,
        stream: bool = True,
    ) -> None:
        self.ctx = ctx
        self.toolchain = toolchain
        self.stream = stream
        self._log = logger.bind(component="target_compiler", project=ctx.project_name)

    def verify_targets(self) -> None:
        """Check that every target path still exists.

        Raises:
            MissingTargetError: If any target is missing.
        """
        missing = [path for path in self.ctx.target_paths if not path.exists()]
        if missing:
            self._log.error("targets_missing", missing=[str(p) for p in missing])
            raise MissingTargetError(missing)

    def compile_target(self, target: str) -> Path:
        """Compile one target into ``<output_dir>/<target>``.

        Returns:
            Path of the compiled bundle.

        Raises:
            CompilationError: If PackageCompiler fails.
        """
        destination = self.ctx.bundle_dir(target)
        code = create_app_code(
            target,
            destination,
            self.ctx.precompile_files,
            self.ctx.cpu_target,
        )
        self._log.info("target_compile_started", target=target, destination=str(destination))
        try:
            self.toolchain.run_julia(
                code,
                project=self.ctx.project_dir,
                cwd=self.ctx.apps_dir,
                stream=self.stream,
            )
        except ToolchainError as e:
            raise CompilationError(target, internal_details=e.output or str(e)) from e
        self._log.info("target_compile_completed", target=target)
        return destination

    def compile_all(self) -> PhaseResult:
        """Compile all targets in order.

        Returns:
            PhaseResult named "compile" listing the produced bundles.

        Raises:
            MissingTargetError: Before any compilation, if a target vanished.
            CompilationError: On the first failing target.
        """
        start_time = time.monotonic()
        self.verify_targets()

        bundles: dict[str, str] = {}
        for target in self.ctx.targets:
            bundles[target] = str(self.compile_target(target))

        duration_ms = int((time.monotonic() - start_time) * 1000)
        return PhaseResult(
            name="compile",
            status=PhaseStatus.OK,
            message="Build complete",
            details={"bundles": bundles},
            duration_ms=duration_ms,
        )
