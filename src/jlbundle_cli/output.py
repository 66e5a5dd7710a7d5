"""Rich console output utilities for jlbundle-cli.

This module provides formatted console output with Rich,
supporting colored success/error/warning/step messages and
respecting NO_COLOR environment variable.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from jlbundle_core.models import BuildReport

# Rich automatically respects NO_COLOR, but we also support --no-color flag
_force_no_color = os.environ.get("NO_COLOR") is not None

_STATUS_STYLES = {
    "ok": "green",
    "warning": "yellow",
    "fatal": "red",
    "skipped": "dim",
}


def create_console(no_color: bool = False) -> Console:
    """Create a Rich Console instance with appropriate color settings.

    Args:
        no_color: If True, disable colored output. Also respects NO_COLOR env var.

    Returns:
        Configured Console instance.
    """
    force_terminal = None
    if no_color or _force_no_color:
        force_terminal = False
    return Console(force_terminal=force_terminal, no_color=no_color or _force_no_color)


# Default console instance
console = create_console()


def success(message: str, **kwargs: Any) -> None:
    """Print a success message with green checkmark.

    Example:
        >>> success("Build complete")
        ✓ Build complete
    """
    console.print(f"[green]✓[/green] {message}", **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print an error message with red X.

    Example:
        >>> error("Julia 1.11 or newer required")
        ✗ Julia 1.11 or newer required
    """
    console.print(f"[bold red]✗[/bold red] {message}", **kwargs)


def warning(message: str, **kwargs: Any) -> None:
    """Print a warning message with yellow triangle.

    Example:
        >>> warning("Manifest.toml does not exist. Will continue...")
        ⚠ Manifest.toml does not exist. Will continue...
    """
    console.print(f"[yellow]⚠[/yellow] {message}", **kwargs)


def step(message: str, **kwargs: Any) -> None:
    """Print a progress line with a bullet.

    Example:
        >>> step("Building: FOO ...")
        • Building: FOO ...
    """
    console.print(f"[bold]•[/bold] {message}", **kwargs)


def print_json(data: dict[str, Any], **kwargs: Any) -> None:
    """Print JSON data with syntax highlighting."""
    import json

    console.print_json(json.dumps(data, default=str), **kwargs)


def print_report(report: BuildReport) -> None:
    """Print a phase summary table followed by every recorded warning.

    Args:
        report: Finished build report.
    """
    table = Table(title=f"Build report: {report.project_name or '(unnamed)'}")
    table.add_column("Phase")
    table.add_column("Status")
    table.add_column("Message")
    table.add_column("Duration", justify="right")

    for phase in report.phases:
        style = _STATUS_STYLES.get(phase.status.value, "")
        table.add_row(
            phase.name,
            f"[{style}]{phase.status.value}[/{style}]" if style else phase.status.value,
            phase.message,
            f"{phase.duration_ms}ms",
        )
    console.print(table)

    for phase in report.phases:
        for text in phase.warnings:
            warning(text)


def set_no_color(no_color: bool) -> None:
    """Update the global console to enable/disable colors.

    Note:
        This updates the module-level console instance.
    """
    global console
    console = create_console(no_color=no_color)
