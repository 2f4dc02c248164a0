"""构建步骤执行

职责:
- 按构建系统约定向 configure 类步骤注入安装前缀
- 在源码目录中依次执行构建步骤（sh -c），首个失败即中止

前缀注入规则按 build.system 注册，未知系统只使用通用 configure 规则:
  autotools / make / 其他: 命令为 configure        → --prefix=<install_path>
  cmake:                   cmake 配置调用           → -DCMAKE_INSTALL_PREFIX=<install_path>
  meson:                   meson setup              → --prefix=<install_path>
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import time
from pathlib import Path, PurePosixPath
from typing import Callable

from simplex.core.exceptions import BuildStepError
from simplex.utils.shell import CommandExecutor, run_tool

logger = logging.getLogger(__name__)

PREFIX_ENV_VAR = "SIMPLEX_PREFIX"

# (step, tokens, prefix) -> 改写后的步骤；不适用时返回 None
PrefixRule = Callable[[str, list[str], str], "str | None"]

_CMAKE_NON_CONFIGURE = frozenset(("--build", "--install", "-E", "-P", "--version", "--help"))
_ENV_ASSIGNMENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*=")


def _tokens(step: str) -> list[str]:
    try:
        return shlex.split(step)
    except ValueError:
        return []


def _command(tokens: list[str]) -> list[str]:
    """跳过开头的 NAME=value 环境变量赋值，返回实际命令及其参数"""
    i = 0
    while i < len(tokens) and _ENV_ASSIGNMENT.match(tokens[i]):
        i += 1
    return tokens[i:]


def configure_rule(step: str, tokens: list[str], prefix: str) -> str | None:
    tokens = _command(tokens)
    if tokens and PurePosixPath(tokens[0]).name == "configure":
        return f"{step} --prefix={shlex.quote(prefix)}"
    return None


def cmake_rule(step: str, tokens: list[str], prefix: str) -> str | None:
    tokens = _command(tokens)
    if not tokens or PurePosixPath(tokens[0]).name != "cmake":
        return None
    if any(t in _CMAKE_NON_CONFIGURE for t in tokens[1:]):
        return None
    return f"{step} -DCMAKE_INSTALL_PREFIX={shlex.quote(prefix)}"


def meson_rule(step: str, tokens: list[str], prefix: str) -> str | None:
    tokens = _command(tokens)
    if len(tokens) >= 2 and PurePosixPath(tokens[0]).name == "meson" and tokens[1] == "setup":
        return f"{step} --prefix={shlex.quote(prefix)}"
    return None


_PREFIX_RULES: dict[str, list[PrefixRule]] = {
    "cmake": [cmake_rule],
    "meson": [meson_rule],
}


def register_prefix_rule(system: str, rule: PrefixRule) -> None:
    """为构建系统追加前缀注入规则"""
    _PREFIX_RULES.setdefault(system, []).append(rule)


def inject_prefix(step: str, system: str, prefix: str) -> str:
    """对 configure 类步骤注入安装前缀，其他步骤原样返回"""
    tokens = _tokens(step)
    for rule in [*_PREFIX_RULES.get(system, []), configure_rule]:
        rewritten = rule(step, tokens, prefix)
        if rewritten is not None:
            return rewritten
    return step


def prepare_steps(steps: tuple[str, ...] | list[str], system: str, prefix: Path) -> list[str]:
    return [inject_prefix(s, system, str(prefix)) for s in steps]


class StepRunner:
    """构建步骤执行器"""

    def __init__(self, executor: CommandExecutor, timeout: float | None = None) -> None:
        self.executor = executor
        self.timeout = timeout

    def run_steps(
        self, steps: list[str], source_dir: Path, prefix: Path,
        env_vars: dict[str, str] | None = None,
    ) -> float:
        """在 source_dir 中顺序执行步骤，返回总耗时（秒）

        Raises:
            BuildStepError: 某一步无法启动、超时或非零退出，后续步骤不再执行
        """
        env = {**os.environ, PREFIX_ENV_VAR: str(prefix), **(env_vars or {})}
        start = time.monotonic()
        total = len(steps)
        for i, step in enumerate(steps, 1):
            run_tool(
                self.executor, ["sh", "-c", step],
                cwd=str(source_dir), env=env, timeout=self.timeout,
                label=f"构建步骤 {i}/{total}", display=step, error_cls=BuildStepError, step=i,
            )
        return time.monotonic() - start
