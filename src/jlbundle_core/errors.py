"""Custom exception hierarchy for jlbundle-core.

This module defines the exception classes used throughout jlbundle:
- BundleError: Base exception for all jlbundle errors
- PreflightError: Bad invocation or unsupported Julia installation
- ContextError: Project directory or Project.toml problems
- MissingTargetError / CompilationError: Fatal compile-phase failures
- ArchivingError: Per-target packaging failure (recoverable)
- PreparationWarning / DependencyWarning: Non-fatal conditions that
  phases record as warnings instead of aborting

User-facing messages are safe to print on the console. Technical details
(subprocess output, tracebacks) are logged via structlog only.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


class BundleError(Exception):
    """Base exception for jlbundle.

    Args:
        user_message: Message to display to the user.
        internal_details: Optional technical details, logged but never printed.

    Attributes:
        log_level: Level at which internal details are logged on construction
            (None skips logging, for errors that are always wrapped).

    Example:
        >>> raise BundleError(
        ...     "Build failed",
        ...     internal_details="julia exited with 1: LoadError ...",
        ... )
    """

    log_level: str | None = "error"

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize BundleError with user message and optional internal details.

        Args:
            user_message: Message to display to the user.
            internal_details: Technical details for internal logging only.
        """
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details

        if internal_details and self.log_level:
            getattr(logger, self.log_level)(
                "bundle_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class PreflightError(BundleError):
    """Raised before any side effect when the invocation cannot proceed.

    Use this exception when:
    - The wrong number of positional arguments is given
    - Julia is not installed or cannot be executed
    - The installed Julia is older than the supported minimum
    """

    pass


class ContextError(BundleError):
    """Raised when a BuildContext cannot be derived from a project directory.

    Attributes:
        path: The path that caused the failure.
    """

    def __init__(
        self,
        user_message: str,
        *,
        path: Path | str | None = None,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message, internal_details=internal_details)
        self.path = Path(path) if path is not None else None


class MissingDirectoryError(ContextError):
    """The project directory (or its apps/ directory) does not exist."""


class MissingMetadataError(ContextError):
    """The project directory has no Project.toml."""


class MalformedMetadataError(ContextError):
    """Project.toml exists but cannot be read or parsed."""


class PreparationWarning(BundleError):
    """Non-fatal problem while preparing the output directory.

    Raised by preparation steps and recorded as a warning by the phase.
    """

    log_level = "warning"


class DependencyWarning(BundleError):
    """Non-fatal failure while instantiating or installing dependencies.

    Raised by dependency steps and recorded as a warning by the phase;
    a later compile attempt surfaces any real problem.

    Attributes:
        step: Name of the dependency step that failed.
    """

    log_level = "warning"

    def __init__(
        self,
        user_message: str,
        *,
        step: str,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message, internal_details=internal_details)
        self.step = step


class MissingTargetError(BundleError):
    """One or more build targets vanished before compilation started.

    Attributes:
        missing: Paths that no longer exist.
    """

    def __init__(
        self,
        missing: Sequence[Path],
        *,
        internal_details: str | None = None,
    ) -> None:
        self.missing = list(missing)
        names = ", ".join(str(p) for p in self.missing)
        super().__init__(f"Could not find build target(s): {names}", internal_details=internal_details)


class CompilationError(BundleError):
    """PackageCompiler failed for a build target.

    Attributes:
        target: Name of the target that failed.
    """

    def __init__(
        self,
        target: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(
            f"Compilation of '{target}' failed - check logs for details",
            internal_details=internal_details,
        )
        self.target = target


class ArchivingError(BundleError):
    """Compressing or splitting a compiled target failed.

    Attributes:
        target: Name of the target being archived.
    """

    log_level = "warning"

    def __init__(
        self,
        target: str,
        user_message: str | None = None,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(
            user_message or f"Something went wrong while archiving '{target}'",
            internal_details=internal_details,
        )
        self.target = target


class ToolchainError(BundleError):
    """A julia subprocess exited with a non-zero status.

    Callers wrap it in a phase-specific error, which logs the output.

    Attributes:
        command: The argument vector that was executed.
        returncode: Process exit status.
        output: Combined tail of stdout/stderr.
    """

    log_level = None

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        output: str = "",
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"'{self.command[0]}' exited with status {returncode}",
            internal_details=output or None,
        )
