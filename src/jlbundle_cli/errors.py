"""CLI error handling for jlbundle-cli.

This module provides CLI-specific error handling that reports
jlbundle-core exceptions through the console helpers and exits
with appropriate exit codes.
"""

from __future__ import annotations

import sys
from typing import NoReturn

from pydantic import ValidationError as PydanticValidationError

from jlbundle_cli.output import error
from jlbundle_core.errors import (
    BundleError,
    CompilationError,
    ContextError,
    MissingTargetError,
    PreflightError,
)

# Exit codes following sysexits.h convention
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # User error (bad arguments, bad project layout)
EXIT_SYSTEM_ERROR = 2  # System error (permissions, toolchain failure)


def format_pydantic_error(err: PydanticValidationError) -> str:
    """Format Pydantic validation error into user-friendly message.

    Example:
        >>> format_pydantic_error(err)
        "Validation failed:\\n  - chunk_size_mb: Input should be greater than or equal to 1"
    """
    lines = ["Validation failed:"]
    for e in err.errors():
        loc = ".".join(str(x) for x in e["loc"])
        lines.append(f"  - {loc}: {e['msg']}")
    return "\n".join(lines)


def exit_code_for(err: BundleError) -> int:
    """Map a core error to a CLI exit code."""
    if isinstance(err, PreflightError | ContextError | MissingTargetError | CompilationError):
        return EXIT_USER_ERROR
    return EXIT_SYSTEM_ERROR


def exit_with_error(message: str, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Exit the CLI with an error message.

    Note:
        This function never returns - it always calls sys.exit().
    """
    error(message)
    sys.exit(exit_code)


def handle_bundle_error(err: BundleError) -> NoReturn:
    """Report a fatal core error and exit with its exit code.

    Pre-flight, context and missing-target messages end with ". Exiting...".
    """
    message = err.user_message
    if isinstance(err, PreflightError | ContextError | MissingTargetError):
        message = f"{message}. Exiting..."
    exit_with_error(message, exit_code=exit_code_for(err))


def handle_settings_error(err: PydanticValidationError) -> NoReturn:
    """Report invalid JLBUNDLE_* settings and exit."""
    exit_with_error(f"Invalid jlbundle settings:\n{format_pydantic_error(err)}")
