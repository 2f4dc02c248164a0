"""包管理器 — 对外操作入口

install / remove / list / info 组合存储布局、已安装索引与安装流水线。

约定:
  - 存储根目录显式传入，不依赖进程级全局状态
  - 索引只在构造时从磁盘重建一次，会话中不再扫描
  - 同一时刻只允许一个操作，跨线程 / 跨进程的串行化由调用方负责

用法:
    pm = PackageManager("./store")
    pm.install_manifest("recipes/sqlite.yml")
    pm.list()
    pm.info("sqlite")
    pm.remove("sqlite", "3.36.0")
"""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from simplex.core.config import Config
from simplex.core.exceptions import ManifestError, PackageNotFoundError, StoreError
from simplex.core.index import InstalledIndex, metadata_path
from simplex.core.manifest.models import (
    InstalledPackageRecord,
    PackageDescription,
    PackageIdentity,
)
from simplex.core.manifest.parser import load_manifest
from simplex.core.store import ResolvedStore, ensure_layout
from simplex.services.pipeline import BuildPipeline
from simplex.utils.shell import CommandExecutor, LocalExecutor

logger = logging.getLogger(__name__)


def version_sort_key(version: str) -> tuple[tuple[int, int, str], ...]:
    """自然排序键

    - 数字段按整数比较（3.10.0 > 3.9.1）
    - 字母段排在版本结束之前，预发布版本低于正式版（1.2rc1 < 1.2 < 1.2.1）
    - 其他字符只作分隔，不参与比较
    """
    parts = [
        (2, int(tok), "") if tok.isdigit() else (0, 0, tok.lower())
        for tok in re.findall(r"[0-9]+|[A-Za-z]+", version)
    ]
    return (*parts, (1, 0, ""))


def _identity_or_none(name: str, version: str) -> PackageIdentity | None:
    try:
        return PackageIdentity(name=name, version=version)
    except ManifestError:
        return None


@dataclass
class OrphanReport:
    """失败安装遗留内容"""

    scratch_dirs: list[Path] = field(default_factory=list)
    unrecorded_installs: list[Path] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.scratch_dirs and not self.unrecorded_installs


class PackageManager:
    """源码包管理器"""

    def __init__(
        self,
        store_root: str | Path = "",
        *,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.config = config or Config()
        self.store: ResolvedStore = ensure_layout(store_root or self.config.store_root)
        self.executor: CommandExecutor = executor or LocalExecutor()
        self.index = InstalledIndex()
        self.index.rebuild(self.store)

    # ---- 安装 ----

    def install(self, description: PackageDescription) -> InstalledPackageRecord:
        """执行完整安装流水线，失败时包不会进入索引"""
        logger.info("安装: %s", description.identity)
        pipeline = BuildPipeline(self.store, self.config, self.executor)
        record = pipeline.run(description)
        self.index.add(record)
        return record

    def install_manifest(self, path: str | Path) -> InstalledPackageRecord:
        return self.install(load_manifest(path))

    # ---- 删除 ----

    def remove(self, name: str, version: str) -> None:
        """删除已安装包

        先删除安装目录，成功后才移除索引条目；删除失败时索引保持不变。

        Raises:
            PackageNotFoundError: 包不在索引中
            StoreError: 安装目录删除失败
        """
        identity = _identity_or_none(name, version)
        if identity is None or identity.key not in self.index:
            raise PackageNotFoundError(f"未安装的包: {name} {version}")

        key = identity.key
        install_path = self.store.install_path(identity)
        if install_path.exists():
            logger.info("删除: %s (%s)", key, install_path)
            try:
                shutil.rmtree(install_path)
            except OSError as e:
                raise StoreError(f"删除安装目录失败 {install_path}: {e}") from e
        else:
            logger.warning("安装目录已不存在，仅移除索引: %s", install_path)
        self.index.discard(key)

    # ---- 查询 ----

    def list(self) -> list[PackageIdentity]:
        return [r.identity for r in self.index.records()]

    def info(self, name: str, version: str | None = None) -> InstalledPackageRecord | None:
        """查询已安装包，未找到返回 None

        未指定版本且装有多个版本时返回最高版本。
        """
        if version is not None:
            identity = _identity_or_none(name, version)
            return self.index.get(identity.key) if identity else None
        candidates = self.index.by_name(name)
        if not candidates:
            return None
        return max(candidates, key=lambda r: version_sort_key(r.version))

    def orphans(self) -> OrphanReport:
        """列出失败安装的遗留内容

        - builds/ 下残留的临时目录
        - installed/ 下没有元数据文件或未进入索引的目录
        """
        report = OrphanReport()
        try:
            report.scratch_dirs = sorted(
                p for p in self.store.builds_dir.iterdir() if p.is_dir()
            )
            for p in sorted(self.store.installed_dir.iterdir()):
                if not p.is_dir():
                    continue
                if p.name not in self.index or not metadata_path(p).is_file():
                    report.unrecorded_installs.append(p)
        except OSError as e:
            raise StoreError(f"无法扫描存储目录 {self.store.root}: {e}") from e
        return report
