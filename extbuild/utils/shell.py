"""Shell 命令执行工具: 统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换和跨平台适配。
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Protocol, Sequence

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议: 抽象子进程调用

    输出去向（优先级从高到低）:
      - stdout_file / stderr_file: 重定向到文件
      - capture=True: 捕获到 CommandResult
      - capture=False: 直接继承终端
    """

    def execute(
        self,
        cmd: str | Sequence[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        stdout_file: Path | None = None,
        stderr_file: Path | None = None,
        capture: bool = True,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...


# =========================================================================
# 默认实现: 本地执行器
# =========================================================================

class LocalExecutor:
    """本地子进程执行器（默认实现）

    命令启动失败（如可执行文件不存在）时抛出 OSError，由调用方处理。
    """

    def execute(
        self,
        cmd: str | Sequence[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        stdout_file: Path | None = None,
        stderr_file: Path | None = None,
        capture: bool = True,
    ) -> CommandResult:
        args = shlex.split(cmd) if isinstance(cmd, str) else list(cmd)
        with ExitStack() as stack:
            out = self._target(stack, stdout_file, capture)
            err = self._target(stack, stderr_file, capture)
            r = subprocess.run(
                args, stdout=out, stderr=err, text=True, errors="replace",
                cwd=cwd, env=env, check=False, timeout=timeout,
            )
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout or "",
            stderr=r.stderr or "",
        )

    @staticmethod
    def _target(stack: ExitStack, path: Path | None, capture: bool) -> IO[Any] | int | None:
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            return stack.enter_context(open(path, "wb"))
        return subprocess.PIPE if capture else None


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器（用于测试或远程执行场景）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor
