"""shell.py LocalExecutor 单元测试"""

from __future__ import annotations

import subprocess
import sys

import pytest

from vendlock.utils.shell import CommandResult, LocalExecutor


class TestLocalExecutor:
    def test_success(self, tmp_path) -> None:
        r = LocalExecutor().execute([sys.executable, "-c", "print('hello')"], cwd=str(tmp_path))
        assert r.success
        assert "hello" in r.stdout

    def test_failure_returns_code(self, tmp_path) -> None:
        r = LocalExecutor().execute(
            [sys.executable, "-c", "import sys; sys.exit(3)"], cwd=str(tmp_path),
        )
        assert r.returncode == 3
        assert not r.success

    def test_timeout_propagates(self, tmp_path) -> None:
        with pytest.raises(subprocess.TimeoutExpired):
            LocalExecutor().execute(
                [sys.executable, "-c", "import time; time.sleep(5)"],
                cwd=str(tmp_path), timeout=1,
            )

    def test_env_overrides(self, tmp_path) -> None:
        r = LocalExecutor({"VENDLOCK_PROBE": "42"}).execute(
            [sys.executable, "-c", "import os; print(os.environ['VENDLOCK_PROBE'])"],
            cwd=str(tmp_path),
        )
        assert r.stdout.strip() == "42"


class TestCommandResult:
    def test_error_summary(self) -> None:
        assert CommandResult(1, "", "").error_summary() == "rc=1"
        summary = CommandResult(128, "", "x" * 500 + "fatal: not found\n").error_summary()
        assert summary.startswith("rc=128: ")
        assert summary.endswith("fatal: not found")
        assert len(summary) == len("rc=128: ") + 300
