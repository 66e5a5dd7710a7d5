"""jlbundle-core: Build orchestration for Julia application bundles.

This package provides:
- BuildContext: Immutable build plan derived from a project directory
- Pre-flight checks and output directory preparation
- DependencyInstaller / TargetCompiler: Pkg and PackageCompiler driving
- Archiver: Chunked tar.gz archives of compiled bundles
- BuildPipeline: Phase sequencing with explicit per-phase outcomes
"""

from __future__ import annotations

__version__ = "0.1.0"

from jlbundle_core.archiver import Archiver, restore_archive
from jlbundle_core.compiler import TargetCompiler
from jlbundle_core.config import BundlerSettings, PackageOverride
from jlbundle_core.context import BuildContext, build_context
from jlbundle_core.dependencies import DependencyInstaller

# Error types
from jlbundle_core.errors import (
    ArchivingError,
    BundleError,
    CompilationError,
    ContextError,
    DependencyWarning,
    MalformedMetadataError,
    MissingDirectoryError,
    MissingMetadataError,
    MissingTargetError,
    PreflightError,
    PreparationWarning,
    ToolchainError,
)
from jlbundle_core.models import BuildReport, PhaseResult, PhaseStatus
from jlbundle_core.pipeline import BuildPipeline
from jlbundle_core.toolchain import CommandResult, CommandRunner, JuliaToolchain, SubprocessRunner
from jlbundle_core.validator import prepare_output, run_preflight

__all__ = [
    "__version__",
    # Context
    "BuildContext",
    "build_context",
    "BundlerSettings",
    "PackageOverride",
    # Phases
    "run_preflight",
    "prepare_output",
    "DependencyInstaller",
    "TargetCompiler",
    "Archiver",
    "restore_archive",
    "BuildPipeline",
    # Toolchain
    "JuliaToolchain",
    "CommandRunner",
    "CommandResult",
    "SubprocessRunner",
    # Models
    "BuildReport",
    "PhaseResult",
    "PhaseStatus",
    # Errors
    "BundleError",
    "PreflightError",
    "ContextError",
    "MissingDirectoryError",
    "MissingMetadataError",
    "MalformedMetadataError",
    "PreparationWarning",
    "DependencyWarning",
    "MissingTargetError",
    "CompilationError",
    "ArchivingError",
    "ToolchainError",
]
