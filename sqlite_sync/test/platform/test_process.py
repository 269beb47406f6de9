"""Tests for sqlite_sync.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from sqlite_sync.core.result import Err, Ok
from sqlite_sync.platform.process import ProcessError, format_command, run


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(
            command=("git", "push"),
            returncode=1,
            stdout="",
            stderr="rejected",
        )
        assert str(error) == "git push failed (exit 1)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("npm", "publish", "--provenance", "--tag", "sqlite-amalgamation-3.46.0"),
            returncode=1,
            stdout="",
            stderr="E403",
        )
        assert str(error) == "npm publish --provenance ... failed (exit 1)"

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


def test_format_command_quotes_spaces() -> None:
    cmd = ["git", "commit", "-m", "Release SQLite 3.46.0"]
    assert format_command(cmd) == 'git commit -m "Release SQLite 3.46.0"'


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import sys; sys.stderr.write('nope'); sys.exit(3)"],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert result.error.returncode == 3
        assert "nope" in result.error.stderr

    def test_missing_executable(self, tmp_path: Path) -> None:
        result = run(["definitely-not-a-real-binary-xyz"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
