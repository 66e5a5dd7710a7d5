"""Dependency installation.

Makes PackageCompiler and the project's dependencies available before any
compilation runs. Each step is best effort: failures are recorded as
warnings on the phase result and the next step still runs, since a later
compile attempt surfaces any real problem.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path

import structlog

from jlbundle_core.context import MANIFEST_FILE, BuildContext
from jlbundle_core.errors import DependencyWarning, ToolchainError
from jlbundle_core.models import PhaseResult
from jlbundle_core.toolchain import JuliaToolchain, julia_str

logger = structlog.get_logger(__name__)

INSTANTIATE = "using Pkg; Pkg.instantiate()"
UPDATE = "using Pkg; Pkg.update()"
LIST_DEPENDENCIES = "using Pkg; foreach(p -> println(p.name), values(Pkg.dependencies()))"


def add_package_code(name: str, url: str | None = None, rev: str | None = None) -> str:
    """Julia snippet adding a registered package, or one pinned to a source/revision."""
    if url is None:
        return f"using Pkg; Pkg.add({julia_str(name)})"
    spec = f"url={julia_str(url)}"
    if rev:
        spec += f", rev={julia_str(rev)}"
    return f"using Pkg; Pkg.add(PackageSpec({spec}))"


def refresh_target_code(project_dir: Path) -> str:
    """Julia snippet re-adding the project by path, then updating and precompiling."""
    return (
        "using Pkg; "
        f"Pkg.add(path={julia_str(project_dir)}); "
        "Pkg.update(); "
        "Pkg.precompile()"
    )


class DependencyInstaller:
    """Installs required packages and refreshes per-target environments.

    Attributes:
        ctx: Build context
        toolchain: Julia toolchain used for every Pkg call
        stream: Show Pkg output on the terminal instead of capturing it

    Example:
        >>> installer = DependencyInstaller(ctx, JuliaToolchain())
        >>> result = installer.install()
        >>> result.warnings
        []
    """

    def __init__(
        self,
        ctx: BuildContext,
        toolchain: JuliaToolchain,
        *,
        stream: bool = False,
    ) -> None:
        self.ctx = ctx
        self.toolchain = toolchain
        self.stream = stream
        self._log = logger.bind(component="dependency_installer", project=ctx.project_name)

    def install(self) -> PhaseResult:
        """Run all dependency steps in order.

        Returns:
            PhaseResult named "dependencies" (OK or WARNING).
        """
        start_time = time.monotonic()
        warnings: list[str] = []
        installed: list[str] = []

        self._log.info("dependencies_started", targets=list(self.ctx.targets))

        self._attempt(self.instantiate_project, warnings)
        self._attempt(self.refresh_base_environment, warnings)
        self._attempt(lambda: installed.extend(self.install_required_packages(warnings)), warnings)
        for target, target_path in self.ctx.iter_targets():
            self._attempt(lambda t=target, p=target_path: self.refresh_target(t, p), warnings)

        duration_ms = int((time.monotonic() - start_time) * 1000)
        self._log.info(
            "dependencies_completed",
            installed=installed,
            warnings=len(warnings),
            duration_ms=duration_ms,
        )
        result = PhaseResult.from_warnings(
            "dependencies",
            warnings,
            message="Installed dependencies",
            details={"installed": installed},
        )
        return result.model_copy(update={"duration_ms": duration_ms})

    def instantiate_project(self) -> None:
        """Resolve and fetch the project's declared dependencies.

        Raises:
            DependencyWarning: If instantiation fails.
        """
        self._pkg(
            INSTANTIATE,
            self.ctx.project_dir,
            step="instantiate",
            message=f"Could not read {self.ctx.project_name} package dependencies",
        )

    def refresh_base_environment(self) -> None:
        """Update Julia's default environment.

        Raises:
            DependencyWarning: If the update fails.
        """
        self._pkg(
            UPDATE,
            self.ctx.base_environment_path,
            step="update_base",
            message=f"Could not update {self.ctx.base_environment_path}",
        )

    def resolved_dependencies(self) -> set[str]:
        """Names of packages resolved in the base environment.

        Raises:
            DependencyWarning: If the listing fails.
        """
        result = self._pkg(
            LIST_DEPENDENCIES,
            self.ctx.base_environment_path,
            step="list_dependencies",
            message="Could not list installed packages",
            stream=False,
        )
        return {line.strip() for line in result.splitlines() if line.strip()}

    def install_required_packages(self, warnings: list[str]) -> list[str]:
        """Add every required package that is not already resolved.

        Packages with an override are added from their source at the given
        revision; all others are added from the registry. A failed install
        is recorded in ``warnings`` and the remaining packages still install.

        Returns:
            Names of packages that were added.
        """
        try:
            present = self.resolved_dependencies()
        except DependencyWarning as w:
            warnings.append(w.user_message)
            present = set()

        added: list[str] = []
        for name in sorted(self.ctx.required_packages):
            if name in present:
                self._log.debug("package_present", package=name)
                continue

            override = self.ctx.package_overrides.get(name)
            if override is not None:
                code = add_package_code(name, override.url, override.rev)
            else:
                code = add_package_code(name)

            try:
                self._pkg(
                    code,
                    self.ctx.base_environment_path,
                    step="add_package",
                    message=f"Could not install {name}",
                )
            except DependencyWarning as w:
                warnings.append(w.user_message)
                continue
            self._log.info("package_added", package=name, pinned=override is not None)
            added.append(name)
        return added

    def refresh_target(self, target: str, target_path: Path) -> None:
        """Re-resolve a target environment against the current project.

        Deletes the target's stale lock file, re-adds the project by path,
        then updates and precompiles inside the target's environment.

        Raises:
            DependencyWarning: If any part of the refresh fails.
        """
        manifest = target_path / MANIFEST_FILE
        try:
            if manifest.is_file():
                manifest.unlink()
        except OSError as e:
            raise DependencyWarning(
                f"Could not remove stale {manifest}",
                step="refresh_target",
                internal_details=str(e),
            ) from e

        self._log.info("target_refresh", target=target)
        self._pkg(
            refresh_target_code(self.ctx.project_dir),
            target_path,
            step="refresh_target",
            message=f"Could not add latest {self.ctx.project_name} to {target.upper()}",
            cwd=target_path if target_path.is_dir() else None,
        )

    def _pkg(
        self,
        code: str,
        project: Path,
        *,
        step: str,
        message: str,
        cwd: Path | None = None,
        stream: bool | None = None,
    ) -> str:
        try:
            result = self.toolchain.run_julia(
                code,
                project=project,
                cwd=cwd,
                stream=self.stream if stream is None else stream,
            )
        except ToolchainError as e:
            raise DependencyWarning(message, step=step, internal_details=e.output or None) from e
        return result.stdout

    def _attempt(self, step: Callable[[], object], warnings: list[str]) -> None:
        try:
            step()
        except DependencyWarning as w:
            self._log.warning("dependency_step_failed", step=w.step, error=w.user_message)
            warnings.append(w.user_message)
