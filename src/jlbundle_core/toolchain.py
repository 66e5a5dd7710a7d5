"""Julia toolchain collaborator.

All interaction with the ``julia`` executable goes through
:class:`JuliaToolchain`. Every Pkg/PackageCompiler snippet runs with an
explicit ``--project`` so the active environment is a parameter of the
call rather than process-wide state.

The process boundary itself is the :class:`CommandRunner` protocol, which
tests replace with a recording fake.
"""

from __future__ import annotations

import re
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import structlog

from jlbundle_core.errors import ToolchainError

logger = structlog.get_logger(__name__)

_VERSION_RE = re.compile(r"julia version (\d+)\.(\d+)(?:\.(\d+))?")
OUTPUT_TAIL_CHARS = 4000


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output_tail(self) -> str:
        combined = "\n".join(part for part in (self.stdout, self.stderr) if part)
        return combined[-OUTPUT_TAIL_CHARS:]


class CommandRunner(Protocol):
    """Runs an argument vector and reports its outcome."""

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        stream: bool = False,
    ) -> CommandResult: ...


class SubprocessRunner:
    """CommandRunner backed by :func:`subprocess.run`.

    With ``stream=True`` the child inherits the terminal so long-running
    compiler output is visible as it happens; otherwise output is captured.
    Commands block until the child exits; no timeout is applied.
    """

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        stream: bool = False,
    ) -> CommandResult:
        argv = [str(a) for a in args]
        completed = subprocess.run(
            argv,
            cwd=cwd,
            capture_output=not stream,
            text=True,
            check=False,
        )
        return CommandResult(
            args=tuple(argv),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def julia_str(value: str | Path) -> str:
    """Quote a value as a Julia string literal."""
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")
    return f'"{escaped}"'


def parse_julia_version(text: str) -> tuple[int, int, int]:
    """Parse ``julia --version`` output into a version tuple.

    Raises:
        ValueError: If the text does not contain a Julia version.
    """
    match = _VERSION_RE.search(text)
    if match is None:
        raise ValueError(f"Unrecognized julia version output: {text.strip()!r}")
    major, minor, patch = match.groups()
    return int(major), int(minor), int(patch or 0)


@dataclass
class JuliaToolchain:
    """Thin wrapper around the julia executable.

    Attributes:
        executable: Name or path of the julia binary
        runner: Process runner used for every invocation
    """

    executable: str = "julia"
    runner: CommandRunner = field(default_factory=SubprocessRunner)

    def __post_init__(self) -> None:
        self._log = logger.bind(component="toolchain", executable=self.executable)

    def version(self) -> tuple[int, int, int]:
        """Return the installed Julia version.

        Raises:
            ToolchainError: If julia cannot be executed or reports no version.
        """
        args = [self.executable, "--version"]
        result = self._execute(args)
        try:
            return parse_julia_version(result.stdout or result.stderr)
        except ValueError as e:
            raise ToolchainError(args, result.returncode, str(e)) from e

    def run_julia(
        self,
        code: str,
        *,
        project: Path,
        cwd: Path | None = None,
        stream: bool = False,
    ) -> CommandResult:
        """Evaluate a Julia snippet with ``project`` as the active environment.

        Args:
            code: Julia source passed via ``-e``.
            project: Environment directory passed as ``--project``.
            cwd: Working directory of the child process.
            stream: Let the child write to the terminal instead of capturing.

        Returns:
            CommandResult of the finished process.

        Raises:
            ToolchainError: If julia exits with a non-zero status.
        """
        args = [
            self.executable,
            "--startup-file=no",
            f"--project={project}",
            "-e",
            code,
        ]
        self._log.debug("julia_invoked", project=str(project), cwd=str(cwd) if cwd else None)
        return self._execute(args, cwd=cwd, stream=stream)

    def _execute(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        stream: bool = False,
    ) -> CommandResult:
        try:
            result = self.runner.run(args, cwd=cwd, stream=stream)
        except OSError as e:
            # Missing binary, permission denied, bad cwd
            raise ToolchainError(args, 127, f"{type(e).__name__}: {e}") from e

        if result.returncode != 0:
            self._log.debug("julia_failed", returncode=result.returncode)
            raise ToolchainError(args, result.returncode, result.output_tail)
        return result
