"""Tests for pubseq.platform.process module."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

from pubseq.core.result import Err, Ok
from pubseq.platform.process import ProcessError, run


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(
            command=("cargo", "publish"),
            returncode=101,
            stdout="",
            stderr="error: crate already uploaded",
        )
        assert str(error) == "cargo publish failed (exit 101)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("npm", "publish", "--registry", "https://x", "--dry-run"),
            returncode=1,
            stdout="",
            stderr="",
        )
        assert str(error) == "npm publish --registry ... failed (exit 1)"

    def test_output_combines_stderr_then_stdout(self) -> None:
        error = ProcessError(("x",), 1, stdout=" out \n", stderr="err\n")
        assert error.output == "err\nout"

    def test_output_skips_empty_streams(self) -> None:
        error = ProcessError(("x",), 1, stdout="only stdout", stderr="  ")
        assert error.output == "only stdout"

    def test_timed_out(self) -> None:
        assert ProcessError(("x",), -1, "", "Command timed out after 5s").timed_out
        assert not ProcessError(("x",), -1, "", "No such file").timed_out
        assert not ProcessError(("x",), 1, "", "timed out").timed_out


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(42)"],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert result.error.returncode == 42
        assert "bad" in result.error.stderr

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert len(result.error.stderr) > 0

    def test_env_is_passed(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import os; print(os.environ['PUBSEQ_TEST'])"],
            cwd=tmp_path,
            env={"PUBSEQ_TEST": "marker", "PATH": ""},
        )

        assert isinstance(result, Ok)
        assert result.value.strip() == "marker"

    def test_timeout(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_run(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
            raise subprocess.TimeoutExpired(cmd, 5)

        monkeypatch.setattr(subprocess, "run", fake_run)
        result = run(["cargo", "publish"], cwd=tmp_path, timeout=5)

        assert isinstance(result, Err)
        assert result.error.timed_out
        assert result.error.command == ("cargo", "publish")

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX sessions")
    def test_child_runs_in_its_own_session(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "import os; print(os.getsid(0))"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert int(result.value.strip()) != os.getsid(0)
