"""Fixtures for CLI command tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from unittest.mock import patch

import pytest
from rich.console import Console

from fakes import FakeRunner
from jlbundle_cli import output
from jlbundle_core.toolchain import JuliaToolchain


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Plain console wide enough that temporary paths never wrap."""
    monkeypatch.setattr(output, "console", Console(width=400, no_color=True))


@pytest.fixture
def patch_toolchain() -> Generator[Callable[[FakeRunner], FakeRunner], None, None]:
    """Route the run and check commands to a FakeRunner.

    Usage:
        runner = patch_toolchain(FakeRunner(build_bundles=True))
    """
    patches = []

    def _patch(runner: FakeRunner) -> FakeRunner:
        def factory(executable: str = "julia") -> JuliaToolchain:
            return JuliaToolchain(executable=executable, runner=runner)

        for module in ("jlbundle_cli.commands.run", "jlbundle_cli.commands.check"):
            p = patch(f"{module}.JuliaToolchain", side_effect=factory)
            p.start()
            patches.append(p)
        return runner

    yield _patch

    for p in patches:
        p.stop()
