"""Phase outcome models.

Models for representing the outcome of each build phase, so the pipeline
decides explicitly whether to continue or abort.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PhaseStatus(str, Enum):
    """Status of a build phase.

    Attributes:
        OK: Phase completed without problems
        WARNING: Phase completed but recorded non-fatal problems
        FATAL: Phase failed; the run cannot produce a complete build
        SKIPPED: Phase was not run (disabled by options)
    """

    OK = "ok"
    WARNING = "warning"
    FATAL = "fatal"
    SKIPPED = "skipped"


class PhaseResult(BaseModel):
    """Outcome of a single build phase.

    Attributes:
        name: Phase name (e.g., "prepare", "dependencies", "archive:foo")
        status: Phase status
        message: Human-readable summary
        warnings: Non-fatal problems recorded during the phase
        details: Additional details (paths, targets, errors)
        duration_ms: Phase duration in milliseconds

    Example:
        >>> result = PhaseResult(
        ...     name="prepare",
        ...     status=PhaseStatus.WARNING,
        ...     warnings=["Manifest.toml does not exist"],
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Phase name")
    status: PhaseStatus = Field(..., description="Phase status")
    message: str = Field(default="", description="Result message")
    warnings: list[str] = Field(default_factory=list, description="Non-fatal problems")
    details: dict[str, Any] = Field(default_factory=dict, description="Additional details")
    duration_ms: int = Field(default=0, ge=0, description="Duration in milliseconds")

    @classmethod
    def from_warnings(
        cls,
        name: str,
        warnings: list[str],
        message: str = "",
        details: dict[str, Any] | None = None,
    ) -> PhaseResult:
        """Build an OK result, downgraded to WARNING when warnings were recorded."""
        return cls(
            name=name,
            status=PhaseStatus.WARNING if warnings else PhaseStatus.OK,
            message=message,
            warnings=warnings,
            details=details or {},
        )

    @property
    def ok(self) -> bool:
        """Check if the phase allows the run to continue."""
        return self.status in (PhaseStatus.OK, PhaseStatus.WARNING, PhaseStatus.SKIPPED)

    @property
    def fatal(self) -> bool:
        """Check if the phase failed."""
        return self.status == PhaseStatus.FATAL


class BuildReport(BaseModel):
    """Aggregated outcome of one build run.

    Attributes:
        project_name: Name from Project.toml
        phases: Phase results in execution order
        total_duration_ms: Total duration in milliseconds
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_name: str = Field(default="", description="Project name")
    phases: list[PhaseResult] = Field(default_factory=list, description="Phase results")
    total_duration_ms: int = Field(default=0, ge=0, description="Total duration")

    @property
    def overall_status(self) -> PhaseStatus:
        """Worst status across all phases."""
        statuses = [p.status for p in self.phases]
        if PhaseStatus.FATAL in statuses:
            return PhaseStatus.FATAL
        if PhaseStatus.WARNING in statuses:
            return PhaseStatus.WARNING
        if statuses and all(s == PhaseStatus.SKIPPED for s in statuses):
            return PhaseStatus.SKIPPED
        return PhaseStatus.OK

    @property
    def passed(self) -> bool:
        """Check if the run finished without fatal phases."""
        return self.overall_status != PhaseStatus.FATAL

    @property
    def exit_code(self) -> int:
        """Process exit status for this report."""
        return 0 if self.passed else 1

    @property
    def warning_count(self) -> int:
        """Total number of warnings across phases."""
        return sum(len(p.warnings) for p in self.phases)

    def phase(self, name: str) -> PhaseResult | None:
        """Return the first phase with the given name, if any."""
        for result in self.phases:
            if result.name == name:
                return result
        return None
