"""集中配置管理

替代散落的默认常量，提供统一的配置入口。
支持从 YAML 文件加载 + 编程式覆盖。配置对象显式传给 PackageManager，
不保存为进程级单例。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any

import yaml

from simplex.core.exceptions import ConfigError
from simplex.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "simplex.yml"


def _default_download_command() -> list[str]:
    return ["curl", "-fsSL", "-o", "{dest}", "{url}"]


def _check_field(name: str, value: Any, expected: type) -> None:
    # bool 是 int 的子类，需单独排除
    if expected is int and isinstance(value, bool):
        ok = False
    elif expected is list:
        ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
    else:
        ok = isinstance(value, expected)
    if not ok:
        raise ConfigError(
            f"配置项 {name} 类型错误: 期望 {expected.__name__}，"
            f"实际 {type(value).__name__} ({value!r})"
        )


@dataclass
class Config:
    """包管理器全局配置"""

    # 存储
    store_root: str = "./store"
    keep_build_dirs: bool = False  # 安装成功后是否保留 builds/ 下的临时目录

    # 外部工具
    download_command: list[str] = field(default_factory=_default_download_command)
    download_timeout: int = 0  # 秒，0 表示不限
    step_timeout: int = 0      # 单个构建步骤超时，0 表示不限

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认

        未知配置项只记录警告。

        Raises:
            ConfigError: 文件无法读取、YAML 格式错误或字段类型不符
        """
        try:
            data = load_yaml(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"无法加载配置文件 {path}: {e}") from e
        if not data:
            return cls()

        defaults = cls()
        types = {f.name: type(getattr(defaults, f.name)) for f in fields(cls)}
        matched: dict[str, Any] = {}
        for key, value in data.items():
            if key not in types:
                logger.warning("忽略未知配置项: %s (%s)", key, path)
                continue
            _check_field(key, value, types[key])
            matched[key] = value
        cfg = cls(**matched)
        logger.info("配置已加载: %s", path)
        return cfg

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def timeout_or_none(self, seconds: int) -> int | None:
        """将 0 / 负数视为不限时"""
        return seconds if seconds and seconds > 0 else None
