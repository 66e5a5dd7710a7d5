"""Unit tests for jlbundle_core.errors."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

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


class TestBundleError:
    """Tests for BundleError."""

    def test_user_message(self) -> None:
        error = BundleError("Build failed")
        assert str(error) == "Build failed"
        assert error.internal_details is None

    def test_internal_details_are_logged_not_shown(self, capsys: pytest.CaptureFixture[str]) -> None:
        error = BundleError("Build failed", internal_details="julia exited with 1")

        assert "julia exited with 1" not in str(error)
        out = capsys.readouterr().out
        assert "bundle_error" in out
        assert "julia exited with 1" in out

    @pytest.mark.parametrize(
        "error",
        [
            PreflightError("x"),
            ContextError("x"),
            PreparationWarning("x"),
            DependencyWarning("x", step="instantiate"),
            MissingTargetError([Path("/p/apps/foo")]),
            CompilationError("foo"),
            ArchivingError("foo"),
            ToolchainError(("julia",), 1),
        ],
    )
    def test_hierarchy(self, error: BundleError) -> None:
        assert isinstance(error, BundleError)


class TestContextErrors:
    """Tests for the ContextError family."""

    @pytest.mark.parametrize(
        "cls", [MissingDirectoryError, MissingMetadataError, MalformedMetadataError]
    )
    def test_subclasses_keep_path(self, cls: type[ContextError]) -> None:
        error = cls("problem", path="/p/Project.toml")
        assert isinstance(error, ContextError)
        assert error.path == Path("/p/Project.toml")


class TestCompileErrors:
    """Tests for MissingTargetError and CompilationError."""

    def test_missing_target_lists_paths(self) -> None:
        error = MissingTargetError([Path("/p/apps/foo"), Path("/p/apps/bar")])
        assert error.missing == [Path("/p/apps/foo"), Path("/p/apps/bar")]
        assert "/p/apps/foo, /p/apps/bar" in error.user_message

    def test_compilation_error_names_target(self) -> None:
        error = CompilationError("foo")
        assert error.target == "foo"
        assert "'foo'" in error.user_message


class TestArchivingError:
    """Tests for ArchivingError."""

    def test_default_message(self) -> None:
        error = ArchivingError("foo")
        assert error.target == "foo"
        assert "archiving 'foo'" in error.user_message

    def test_custom_message(self) -> None:
        assert ArchivingError("foo", "No space").user_message == "No space"


class TestDependencyWarning:
    """Tests for DependencyWarning."""

    def test_step(self) -> None:
        warning = DependencyWarning("Could not install X", step="install")
        assert warning.step == "install"
        assert warning.user_message == "Could not install X"


class TestLogLevels:
    """Tests for the construction-time log of internal details."""

    @pytest.mark.parametrize(
        "make_error",
        [
            lambda: PreparationWarning("x", internal_details="details"),
            lambda: DependencyWarning("x", step="instantiate", internal_details="details"),
            lambda: ArchivingError("foo", internal_details="details"),
        ],
    )
    def test_recoverable_errors_log_warnings(
        self, make_error: Callable[[], BundleError], capsys: pytest.CaptureFixture[str]
    ) -> None:
        make_error()
        out = capsys.readouterr().out
        assert "[warning" in out
        assert "[error" not in out

    def test_fatal_errors_log_errors(self, capsys: pytest.CaptureFixture[str]) -> None:
        CompilationError("foo", internal_details="LoadError")
        assert "[error" in capsys.readouterr().out

    def test_toolchain_error_is_not_logged(self, capsys: pytest.CaptureFixture[str]) -> None:
        """The wrapping error logs the output instead."""
        ToolchainError(("julia", "-e", "1"), 1, "ERROR: LoadError")
        assert "bundle_error" not in capsys.readouterr().out
