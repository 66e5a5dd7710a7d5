"""Shared pytest fixtures for jlbundle tests.

Provides project tree factories, CliRunner fixtures and a toolchain wired
to FakeRunner (see fakes.py). No test starts a real julia process.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from click.testing import CliRunner
import pytest
import structlog

from fakes import FakeRunner
from jlbundle_core.config import BundlerSettings
from jlbundle_core.context import BuildContext, build_context
from jlbundle_core.toolchain import JuliaToolchain

PROJECT_TOML = """\
name = "demo"
uuid = "8f2b0b5c-1111-4a4a-9c9c-0123456789ab"
version = "0.1.0"

[deps]
Pkg = "44cfe95a-1eb2-52ea-b672-e2afdf69b78f"
"""


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture(autouse=True)
def isolate_settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep JLBUNDLE_* variables of the host out of tests."""
    for key in list(os.environ):
        if key.startswith("JLBUNDLE_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("JLBUNDLE_JULIA_DEPOT", str(tmp_path / "depot"))


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def fake_runner() -> FakeRunner:
    """A FakeRunner reporting Julia 1.11.2."""
    return FakeRunner()


@pytest.fixture
def toolchain(fake_runner: FakeRunner) -> JuliaToolchain:
    """A JuliaToolchain wired to the fake runner."""
    return JuliaToolchain(executable="julia", runner=fake_runner)


@pytest.fixture
def settings() -> BundlerSettings:
    """Default settings with a temporary depot."""
    return BundlerSettings()


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory creating a project tree.

    The default tree has Project.toml (name = "demo"), Manifest.toml,
    two file targets (apps/foo, apps/bar) and one directory (apps/sub).
    """

    def _make(
        name: str = "demo",
        targets: Sequence[str] = ("foo", "bar"),
        subdirs: Sequence[str] = ("sub",),
        project_toml: str | None = None,
        manifest: bool = True,
    ) -> Path:
        root = tmp_path / name
        apps = root / "apps"
        apps.mkdir(parents=True)
        content = project_toml if project_toml is not None else PROJECT_TOML
        (root / "Project.toml").write_text(content)
        if manifest:
            (root / "Manifest.toml").write_text("# lock file\n")
        for target in targets:
            (apps / target).write_text(f"# app {target}\n")
        for sub in subdirs:
            (apps / sub).mkdir()
        return root

    return _make


@pytest.fixture
def project_dir(make_project: Callable[..., Path]) -> Path:
    """The default demo project."""
    return make_project()


@pytest.fixture
def build_ctx(project_dir: Path, settings: BundlerSettings) -> BuildContext:
    """BuildContext for the default demo project."""
    return build_context(project_dir, julia_version=(1, 11, 2), settings=settings)
