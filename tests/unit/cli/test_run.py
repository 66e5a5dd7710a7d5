"""Unit tests for the run command."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from fakes import FakeRunner
from jlbundle_cli.main import cli
from jlbundle_core.archiver import list_chunks

PatchToolchain = Callable[[FakeRunner], FakeRunner]


class TestRunSuccess:
    """Tests for successful builds."""

    def test_builds_every_app(
        self, cli_runner: CliRunner, project_dir: Path, patch_toolchain: PatchToolchain
    ) -> None:
        runner = patch_toolchain(FakeRunner(build_bundles=True))

        result = cli_runner.invoke(cli, ["run", str(project_dir)])

        assert result.exit_code == 0, result.output
        assert "Pre-checks complete." in result.output
        assert "Building demo: bar, foo" in result.output
        assert f"Build complete. Output in {project_dir / 'build'}" in result.output
        assert (project_dir / "build" / "bar" / "bin" / "bar").is_file()
        assert (project_dir / "build" / "foo" / "bin" / "foo").is_file()
        assert len(runner.calls_containing("create_app(")) == 2

    def test_archive(
        self, cli_runner: CliRunner, project_dir: Path, patch_toolchain: PatchToolchain
    ) -> None:
        patch_toolchain(FakeRunner(build_bundles=True))

        result = cli_runner.invoke(cli, ["run", str(project_dir), "--archive"])

        assert result.exit_code == 0, result.output
        for target in ("bar", "foo"):
            archive_dir = project_dir / "build" / f"{target}_archived"
            assert [p.name for p in list_chunks(archive_dir)] == ["tardisk00"]
            assert f"Archiving complete for {target.upper()}" in result.output

    def test_deps_only(
        self, cli_runner: CliRunner, project_dir: Path, patch_toolchain: PatchToolchain
    ) -> None:
        runner = patch_toolchain(FakeRunner())

        result = cli_runner.invoke(cli, ["run", str(project_dir), "--deps-only"])

        assert result.exit_code == 0, result.output
        assert "Dependencies ready" in result.output
        assert runner.calls_containing("create_app(") == []
        assert runner.calls_containing("Pkg.precompile()")

    def test_cpu_target_option(
        self, cli_runner: CliRunner, project_dir: Path, patch_toolchain: PatchToolchain
    ) -> None:
        runner = patch_toolchain(FakeRunner())

        result = cli_runner.invoke(cli, ["run", str(project_dir), "--cpu-target", "native"])

        assert result.exit_code == 0, result.output
        assert all('cpu_target="native"' in c.code for c in runner.calls_containing("create_app("))

    def test_warnings_listed_and_exit_zero(
        self, cli_runner: CliRunner, project_dir: Path, patch_toolchain: PatchToolchain
    ) -> None:
        (project_dir / "Manifest.toml").unlink()
        patch_toolchain(FakeRunner(fail_on=["Pkg.instantiate()"]))

        result = cli_runner.invoke(cli, ["run", str(project_dir)])

        assert result.exit_code == 0, result.output
        assert "Will continue..." in result.output
        assert "Could not read demo package dependencies" in result.output

    def test_no_apps(
        self,
        cli_runner: CliRunner,
        make_project: Callable[..., Path],
        patch_toolchain: PatchToolchain,
    ) -> None:
        project = make_project("empty", targets=())
        patch_toolchain(FakeRunner())

        result = cli_runner.invoke(cli, ["run", str(project)])

        assert result.exit_code == 0, result.output
        assert "No apps found" in result.output

    def test_verbose_shows_duration(
        self, cli_runner: CliRunner, project_dir: Path, patch_toolchain: PatchToolchain
    ) -> None:
        patch_toolchain(FakeRunner())

        result = cli_runner.invoke(cli, ["--verbose", "run", str(project_dir)])

        assert result.exit_code == 0, result.output
        assert "Total duration" in result.output


class TestRunPreflight:
    """Tests for invocation and toolchain failures."""

    @pytest.mark.parametrize("extra", [[], ["a", "b"]])
    def test_wrong_argument_count(
        self,
        cli_runner: CliRunner,
        tmp_path: Path,
        patch_toolchain: PatchToolchain,
        extra: list[str],
    ) -> None:
        """Zero or two arguments exit 1 before julia runs or anything is written."""
        runner = patch_toolchain(FakeRunner())

        with cli_runner.isolated_filesystem(temp_dir=tmp_path) as cwd:
            result = cli_runner.invoke(cli, ["run", *extra])
            assert list(Path(cwd).iterdir()) == []

        assert result.exit_code == 1
        assert "✗ Input project root directory missing" in result.output
        assert "Exiting..." in result.output
        assert runner.calls == []
        assert not any(p.name == "build" for p in tmp_path.rglob("*"))

    def test_old_julia(
        self, cli_runner: CliRunner, project_dir: Path, patch_toolchain: PatchToolchain
    ) -> None:
        patch_toolchain(FakeRunner(version="1.10.4"))

        result = cli_runner.invoke(cli, ["run", str(project_dir)])

        assert result.exit_code == 1
        assert "Julia 1.11 or newer required" in result.output
        assert not (project_dir / "build").exists()

    def test_missing_julia(
        self, cli_runner: CliRunner, project_dir: Path, patch_toolchain: PatchToolchain
    ) -> None:
        patch_toolchain(FakeRunner(version=None))

        result = cli_runner.invoke(cli, ["run", str(project_dir)])

        assert result.exit_code == 1
        assert "Is Julia installed" in result.output

    def test_missing_directory(
        self, cli_runner: CliRunner, tmp_path: Path, patch_toolchain: PatchToolchain
    ) -> None:
        patch_toolchain(FakeRunner())

        result = cli_runner.invoke(cli, ["run", str(tmp_path / "nope")])

        assert result.exit_code == 1
        assert f"✗ Directory {tmp_path / 'nope'} does not exist. Exiting..." in result.output
        assert "╭" not in result.output
        assert not (tmp_path / "nope").exists()

    def test_missing_project_toml(
        self, cli_runner: CliRunner, tmp_path: Path, patch_toolchain: PatchToolchain
    ) -> None:
        (tmp_path / "bare").mkdir()
        patch_toolchain(FakeRunner())

        result = cli_runner.invoke(cli, ["run", str(tmp_path / "bare")])

        assert result.exit_code == 1
        assert "Project.toml" in result.output
        assert not (tmp_path / "bare" / "build").exists()

    def test_invalid_settings(
        self,
        cli_runner: CliRunner,
        project_dir: Path,
        patch_toolchain: PatchToolchain,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("JLBUNDLE_CHUNK_SIZE_MB", "0")
        patch_toolchain(FakeRunner())

        result = cli_runner.invoke(cli, ["run", str(project_dir)])

        assert result.exit_code == 1
        assert "Invalid jlbundle settings" in result.output
        assert "chunk_size_mb" in result.output


class TestRunCompileFailures:
    """Tests for fatal compile-phase failures."""

    def test_compilation_failure_stops_build(
        self, cli_runner: CliRunner, project_dir: Path, patch_toolchain: PatchToolchain
    ) -> None:
        runner = patch_toolchain(FakeRunner(fail_on=['create_app("bar"']))

        result = cli_runner.invoke(cli, ["run", str(project_dir)])

        assert result.exit_code == 1
        assert "✗ Compilation of 'bar' failed - check logs for details" in result.output
        assert runner.calls_containing('create_app("foo"') == []

    def test_target_removed_after_discovery(
        self,
        cli_runner: CliRunner,
        project_dir: Path,
        patch_toolchain: PatchToolchain,
    ) -> None:
        """A target deleted while dependencies install aborts before compiling."""
        target = project_dir / "apps" / "foo"

        class VanishingRunner(FakeRunner):
            def run(self, args, *, cwd=None, stream=False):  # type: ignore[no-untyped-def]
                if any("Pkg.instantiate()" in str(a) for a in args):
                    target.unlink(missing_ok=True)
                return super().run(args, cwd=cwd, stream=stream)

        runner = patch_toolchain(VanishingRunner())

        result = cli_runner.invoke(cli, ["run", str(project_dir)])

        assert result.exit_code == 1
        assert "Could not find build target(s)" in result.output
        assert runner.calls_containing("create_app(") == []
