"""子进程执行

拉取器只依赖 CommandExecutor 协议，测试注入假的执行器即可，
无需 patch subprocess。
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

# 禁止 git 在缺少凭据时阻塞等待终端输入
NON_INTERACTIVE_GIT_ENV = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_ASKPASS": "echo",
    "GCM_INTERACTIVE": "never",
}


@dataclass
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def error_summary(self, limit: int = 300) -> str:
        """rc 与 stderr 末尾，用于错误消息"""
        tail = self.stderr.strip()[-limit:]
        return f"rc={self.returncode}: {tail}" if tail else f"rc={self.returncode}"


class CommandExecutor(Protocol):
    def execute(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        timeout: int | None = None,
    ) -> CommandResult:
        """执行命令并返回结果；超时抛 subprocess.TimeoutExpired"""
        ...


class LocalExecutor:
    """本地子进程执行器，env 中的变量覆盖到当前进程环境之上"""

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self.env = env or {}

    def execute(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        timeout: int | None = None,
    ) -> CommandResult:
        logger.debug("exec: %s (cwd=%s)", " ".join(cmd), cwd)
        r = subprocess.run(
            cmd, capture_output=True, text=True,
            cwd=cwd, check=False, timeout=timeout or None,
            env={**os.environ, **self.env} if self.env else None,
        )
        return CommandResult(r.returncode, r.stdout, r.stderr)
