"""外部命令执行工具 — 统一子进程调用

下载工具、构建步骤都经由 CommandExecutor 协议执行，方便测试替换。
工作目录总是以 cwd 参数显式传入，不修改当前进程的工作目录。
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Any, Protocol

from simplex.core.exceptions import ToolInvocationError

logger = logging.getLogger(__name__)

# 错误信息中保留的 stderr 长度
STDERR_TAIL = 2000


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议 — 抽象子进程调用

    测试时可注入假实现，无需 patch subprocess。
    超时应抛出 subprocess.TimeoutExpired，无法启动应抛出 OSError。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...


# =========================================================================
# 默认实现: 本地执行器
# =========================================================================

class LocalExecutor:
    """本地子进程执行器（默认实现）"""

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        args = shlex.split(cmd) if isinstance(cmd, str) else cmd
        r = subprocess.run(
            args, capture_output=True, text=True,
            cwd=cwd, env=env, check=False, timeout=timeout,
        )
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )


def command_text(cmd: str | list[str]) -> str:
    """命令的可读文本形式（用于日志和错误信息）"""
    return cmd if isinstance(cmd, str) else shlex.join(cmd)


def run_tool(
    executor: CommandExecutor,
    cmd: str | list[str],
    *,
    cwd: str = ".",
    env: dict[str, str] | None = None,
    timeout: float | None = None,
    label: str = "cmd",
    display: str = "",
    error_cls: type[ToolInvocationError] = ToolInvocationError,
    **error_kwargs: Any,
) -> CommandResult:
    """执行外部工具，任何失败都转换为 error_cls

    失败包括: 无法启动、超时被终止、非零退出。
    异常携带命令文本（display 优先）、返回码和截断后的 stderr。
    """
    text = display or command_text(cmd)
    logger.info("  %s: %s (cwd=%s)", label, text, cwd)
    try:
        r = executor.execute(cmd, cwd=cwd, env=env, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise error_cls(
            f"{label}超时 ({e.timeout}s)，已终止: {text}",
            command=text, **error_kwargs,
        ) from e
    except OSError as e:
        raise error_cls(
            f"{label}无法启动: {text} - {e}",
            command=text, **error_kwargs,
        ) from e

    if not r.success:
        stderr = r.stderr[-STDERR_TAIL:]
        raise error_cls(
            f"{label}失败 (rc={r.returncode}): {text}\n{stderr}".rstrip(),
            command=text, returncode=r.returncode, stderr=stderr,
            **error_kwargs,
        )
    return r
