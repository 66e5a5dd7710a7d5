"""Build context derivation.

A :class:`BuildContext` is derived once per run from a project directory
and is read-only afterwards. Deriving it has no side effects.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Self

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from jlbundle_core.config import BundlerSettings, PackageOverride
from jlbundle_core.errors import (
    MalformedMetadataError,
    MissingDirectoryError,
    MissingMetadataError,
)

logger = structlog.get_logger(__name__)

PROJECT_FILE = "Project.toml"
MANIFEST_FILE = "Manifest.toml"
APPS_DIR = "apps"
BUILD_DIR = "build"
PRECOMPILE_FILE = "precompile.jl"


class BuildContext(BaseModel):
    """Everything needed to run one build.

    Attributes:
        project_name: Name from Project.toml ("" when absent)
        project_dir: Absolute project root
        base_environment_path: Julia's default environment for this version
        apps_dir: Directory enumerating build targets
        output_dir: Directory receiving compiled bundles
        targets: Target names (file entries under apps_dir)
        target_paths: Absolute target paths, index-aligned with targets
        required_packages: Packages required in the base environment
        package_overrides: Source/revision overrides per package name
        cpu_target: cpu_target passed to PackageCompiler
        precompile_files: Warm-up scripts, one per target
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_name: str = Field(default="", description="Project name")
    project_dir: Path = Field(..., description="Project root")
    base_environment_path: Path = Field(..., description="Default Julia environment")
    apps_dir: Path = Field(..., description="Apps directory")
    output_dir: Path = Field(..., description="Build output directory")
    targets: tuple[str, ...] = Field(default=(), description="Build target names")
    target_paths: tuple[Path, ...] = Field(default=(), description="Build target paths")
    required_packages: frozenset[str] = Field(
        default=frozenset({"PackageCompiler"}), description="Required packages"
    )
    package_overrides: dict[str, PackageOverride] = Field(
        default_factory=dict, description="Package source overrides"
    )
    cpu_target: str = Field(default="generic", min_length=1, description="CPU target")
    precompile_files: tuple[Path, ...] = Field(default=(), description="Warm-up scripts")

    @model_validator(mode="after")
    def _check_alignment(self) -> Self:
        if len(self.targets) != len(self.target_paths):
            raise ValueError("targets and target_paths must have the same length")
        if len(self.precompile_files) != len(self.targets):
            raise ValueError("precompile_files must have one entry per target")
        for name, path in zip(self.targets, self.target_paths, strict=True):
            if path.name != name:
                raise ValueError(f"target path {path} does not match target '{name}'")
        return self

    @property
    def project_file(self) -> Path:
        return self.project_dir / PROJECT_FILE

    @property
    def manifest_file(self) -> Path:
        return self.project_dir / MANIFEST_FILE

    def bundle_dir(self, target: str) -> Path:
        """Compiled bundle directory for a target."""
        return self.output_dir / target

    def archive_dir(self, target: str) -> Path:
        """Archive chunk directory for a target."""
        return self.output_dir / f"{target}_archived"

    def iter_targets(self):
        """Yield ``(name, path)`` pairs in build order."""
        return zip(self.targets, self.target_paths, strict=True)


def base_environment_path(depot: Path, julia_version: tuple[int, ...]) -> Path:
    """Julia's default environment path, e.g. ``~/.julia/environments/v1.11``."""
    major, minor = julia_version[0], julia_version[1]
    return depot / "environments" / f"v{major}.{minor}"


def read_project_name(project_file: Path) -> str:
    """Read the ``name`` key of a Project.toml.

    A missing ``name`` key yields an empty string.

    Raises:
        MalformedMetadataError: If the file cannot be read or parsed.
    """
    try:
        with project_file.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise MalformedMetadataError(
            f"Something went wrong while retrieving project name from {project_file}",
            path=project_file,
            internal_details=f"{type(e).__name__}: {e}",
        ) from e

    name = data.get("name", "")
    if not isinstance(name, str):
        raise MalformedMetadataError(
            f"Project name in {project_file} is not a string",
            path=project_file,
        )
    return name


def discover_targets(apps_dir: Path) -> list[Path]:
    """Return non-directory entries of ``apps_dir``, sorted by name.

    Raises:
        MissingDirectoryError: If ``apps_dir`` is not a directory.
    """
    if not apps_dir.is_dir():
        raise MissingDirectoryError(
            f"Directory {apps_dir} does not exist",
            path=apps_dir,
        )
    return sorted(
        (entry for entry in apps_dir.iterdir() if not entry.is_dir()),
        key=lambda p: p.name,
    )


def build_context(
    project_dir: Path | str,
    *,
    julia_version: tuple[int, ...],
    settings: BundlerSettings | None = None,
    cpu_target: str | None = None,
) -> BuildContext:
    """Derive a BuildContext from a project directory.

    Args:
        project_dir: Project root (relative paths are resolved).
        julia_version: Detected Julia version, selects the base environment.
        settings: Bundler settings (defaults loaded from the environment).
        cpu_target: Overrides ``settings.cpu_target`` when given.

    Returns:
        Fully populated BuildContext.

    Raises:
        MissingDirectoryError: If the project or apps directory does not exist.
        MissingMetadataError: If Project.toml is missing.
        MalformedMetadataError: If Project.toml cannot be parsed.
    """
    settings = settings or BundlerSettings()
    root = Path(project_dir).expanduser().resolve()

    if not root.exists():
        raise MissingDirectoryError(f"Directory {project_dir} does not exist", path=root)

    project_file = root / PROJECT_FILE
    if not project_file.is_file():
        raise MissingMetadataError(
            f"Directory {project_dir} appears not to contain a {PROJECT_FILE} file",
            path=project_file,
        )
    project_name = read_project_name(project_file)
    if not project_name:
        logger.warning("project_name_missing", project_file=str(project_file))

    apps_dir = root / APPS_DIR
    target_paths = discover_targets(apps_dir)

    ctx = BuildContext(
        project_name=project_name,
        project_dir=root,
        base_environment_path=base_environment_path(settings.julia_depot, julia_version),
        apps_dir=apps_dir,
        output_dir=root / BUILD_DIR,
        targets=tuple(p.name for p in target_paths),
        target_paths=tuple(target_paths),
        required_packages=frozenset(settings.required_packages),
        package_overrides=dict(settings.package_overrides),
        cpu_target=cpu_target or settings.cpu_target,
        precompile_files=tuple(p / PRECOMPILE_FILE for p in target_paths),
    )
    logger.debug(
        "context_built",
        project=project_name,
        project_dir=str(root),
        targets=list(ctx.targets),
    )
    return ctx
