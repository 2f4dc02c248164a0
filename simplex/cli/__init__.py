"""simplex 命令行接口

只负责参数解析与输出，所有操作转交 PackageManager。
子命令按领域拆分为子模块，各自注册到 main group。
"""

from __future__ import annotations

import os
from typing import Any

import click

from simplex import __version__
from simplex.core.config import DEFAULT_CONFIG_FILE, Config
from simplex.utils.logger import setup_logging


class CliState:
    """命令间共享的上下文，PackageManager 在首次使用时才构造"""

    def __init__(self, store: str, config_file: str) -> None:
        self.store = store
        self.config_file = config_file
        self._manager: Any = None

    @property
    def manager(self) -> Any:
        if self._manager is None:
            from simplex.services.package_manager import PackageManager
            cfg = Config.from_file(self.config_file)
            self._manager = PackageManager(self.store or cfg.store_root, config=cfg)
        return self._manager


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--store", envvar="SIMPLEX_STORE", default="",
    help="存储根目录（默认取配置文件 store_root）",
)
@click.option(
    "--config", "config_file", envvar="SIMPLEX_CONFIG",
    default=DEFAULT_CONFIG_FILE, help="配置文件路径",
)
@click.pass_context
def main(ctx: click.Context, store: str, config_file: str) -> None:
    """simplex - 基于源码构建的极简包管理器"""
    setup_logging(
        level=os.getenv("SIMPLEX_LOG_LEVEL", "INFO"),
        json_output=os.getenv("SIMPLEX_LOG_JSON", "") == "1",
    )
    ctx.obj = CliState(store, config_file)


# 注册各领域子命令
from simplex.cli.cmd_pkg import register as _reg_pkg  # noqa: E402

_reg_pkg(main)
