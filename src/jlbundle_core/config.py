"""Bundler settings.

Settings are read from environment variables with the ``JLBUNDLE_`` prefix
(or a local ``.env`` file) and can be overridden from the command line.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ARCHIVE_NAME = "tardisk"
"""Base name of chunk files, matching ``split`` output naming."""

MIB = 1024 * 1024


class PackageOverride(BaseModel):
    """Install a required package from a source location at a revision.

    Attributes:
        url: Repository URL (or local path) of the package
        rev: Branch, tag or commit to install
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = Field(..., min_length=1, description="Package source location")
    rev: str = Field(default="master", min_length=1, description="Revision to install")


class BundlerSettings(BaseSettings):
    """Configuration for a bundling run.

    Example:
        >>> # From environment (JLBUNDLE_CPU_TARGET=native ...)
        >>> settings = BundlerSettings()
        >>>
        >>> # Explicit
        >>> settings = BundlerSettings(cpu_target="native", chunk_size_mb=50)
    """

    model_config = SettingsConfigDict(
        env_prefix="JLBUNDLE_",
        env_file=".env",
        extra="ignore",
    )

    julia_executable: str = Field(
        default="julia",
        description="Julia executable name or path",
    )
    min_julia_version: str = Field(
        default="1.11",
        pattern=r"^\d+\.\d+(\.\d+)?$",
        description="Oldest supported Julia version",
    )
    julia_depot: Path = Field(
        default_factory=lambda: Path.home() / ".julia",
        description="Julia depot holding the default environments",
    )
    required_packages: list[str] = Field(
        default_factory=lambda: ["PackageCompiler"],
        description="Packages that must be present in the base environment",
    )
    package_overrides: dict[str, PackageOverride] = Field(
        default_factory=dict,
        description="Per-package source/revision overrides (JSON)",
    )
    cpu_target: str = Field(
        default="generic",
        min_length=1,
        description="cpu_target passed to PackageCompiler",
    )
    archive_name: str = Field(
        default=DEFAULT_ARCHIVE_NAME,
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Base name of archive chunk files",
    )
    chunk_size_mb: int = Field(
        default=100,
        ge=1,
        description="Maximum size of one archive chunk in MiB",
    )

    @field_validator("julia_depot")
    @classmethod
    def _expand_depot(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def chunk_size_bytes(self) -> int:
        """Chunk size in bytes."""
        return self.chunk_size_mb * MIB

    @property
    def min_version_tuple(self) -> tuple[int, ...]:
        """Minimum Julia version as an integer tuple."""
        return tuple(int(part) for part in self.min_julia_version.split("."))
