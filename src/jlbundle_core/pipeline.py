"""Build pipeline.

Sequences the build phases for one BuildContext:
prepare output → dependencies → compile targets → archive (optional).
"""

from __future__ import annotations

import time

import structlog

from jlbundle_core.archiver import Archiver
from jlbundle_core.compiler import TargetCompiler
from jlbundle_core.config import BundlerSettings
from jlbundle_core.context import BuildContext
from jlbundle_core.dependencies import DependencyInstaller
from jlbundle_core.models import BuildReport, PhaseResult, PhaseStatus
from jlbundle_core.toolchain import JuliaToolchain
from jlbundle_core.validator import prepare_output

logger = structlog.get_logger(__name__)


class BuildPipeline:
    """Orchestrates one build run.

    Phase outcomes are collected into a BuildReport. Non-fatal problems
    arrive as WARNING results; MissingTargetError and CompilationError
    propagate to the caller and end the run.

    Attributes:
        ctx: Build context
        toolchain: Julia toolchain shared by all phases
        settings: Bundler settings (archive naming and chunk size)
        stream: Show Julia output on the terminal

    Example:
        >>> pipeline = BuildPipeline(ctx, JuliaToolchain())
        >>> report = pipeline.run(archive=True)
        >>> report.exit_code
        0
    """

    def __init__(
        self,
        ctx: BuildContext,
        toolchain: JuliaToolchain,
        settings: BundlerSettings | None = None,
        *,
        stream: bool = True,
    ) -> None:
        self.ctx = ctx
        self.toolchain = toolchain
        self.settings = settings or BundlerSettings()
        self.stream = stream
        self._log = logger.bind(component="build_pipeline", project=ctx.project_name)

    def run(self, *, deps_only: bool = False, archive: bool = False) -> BuildReport:
        """Run all phases.

        Args:
            deps_only: Stop after installing dependencies.
            archive: Split compiled bundles into chunk archives.

        Returns:
            BuildReport with one entry per phase (one per target for archives).

        Raises:
            MissingTargetError: If a target vanished before compilation.
            CompilationError: If PackageCompiler fails for a target.
        """
        start_time = time.monotonic()
        phases: list[PhaseResult] = []

        self._log.info(
            "build_started",
            targets=list(self.ctx.targets),
            deps_only=deps_only,
            archive=archive,
        )

        phases.append(prepare_output(self.ctx))
        phases.append(DependencyInstaller(self.ctx, self.toolchain, stream=self.stream).install())

        if deps_only:
            self._log.info("build_skipped", reason="deps_only")
            phases.append(self._skipped("compile", "Skipping build (--deps-only)"))
            phases.append(self._skipped("archive", "Skipping archiving (--deps-only)"))
        else:
            phases.append(TargetCompiler(self.ctx, self.toolchain, stream=self.stream).compile_all())
            if archive:
                archiver = Archiver(
                    self.ctx,
                    archive_name=self.settings.archive_name,
                    chunk_size=self.settings.chunk_size_bytes,
                )
                phases.extend(archiver.archive_all())
            else:
                phases.append(self._skipped("archive", "Archiving disabled"))

        report = BuildReport(
            project_name=self.ctx.project_name,
            phases=phases,
            total_duration_ms=int((time.monotonic() - start_time) * 1000),
        )
        self._log.info(
            "build_completed",
            overall_status=report.overall_status.value,
            warnings=report.warning_count,
            total_duration_ms=report.total_duration_ms,
        )
        return report

    @staticmethod
    def _skipped(name: str, message: str) -> PhaseResult:
        return PhaseResult(name=name, status=PhaseStatus.SKIPPED, message=message)
