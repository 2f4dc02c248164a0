"""已安装包索引

内存中的 {key: InstalledPackageRecord} 映射，启动时从 installed/ 目录重建。
每个安装目录内的 METADATA_FILE 保存原始清单的副本，用于恢复依赖、
构建步骤和来源；缺失或损坏时退化为仅含身份的记录。
"""

from __future__ import annotations

import logging
from pathlib import Path

from simplex.core.exceptions import ManifestError, StoreError
from simplex.core.manifest.models import (
    InstalledPackageRecord,
    PackageDescription,
    PackageIdentity,
)
from simplex.core.manifest.parser import dump, parse
from simplex.core.store import ResolvedStore
from simplex.utils.yaml_io import atomic_write, read_text_limited

logger = logging.getLogger(__name__)

METADATA_FILE = ".simplex-package.yml"


def metadata_path(install_dir: Path) -> Path:
    return install_dir / METADATA_FILE


def write_metadata(install_dir: Path, description: PackageDescription) -> Path:
    """把清单写入安装目录（原子写入）"""
    path = metadata_path(install_dir)
    try:
        atomic_write(path, dump(description))
    except OSError as e:
        raise StoreError(f"写入安装元数据失败 {path}: {e}") from e
    return path


def read_metadata(install_dir: Path, identity: PackageIdentity) -> InstalledPackageRecord:
    """读取安装元数据，不可用时返回仅含身份的记录"""
    path = metadata_path(install_dir)
    if not path.is_file():
        return InstalledPackageRecord(identity=identity)
    try:
        desc = parse(read_text_limited(path))
    except (OSError, ValueError, ManifestError) as e:
        logger.warning("安装元数据不可用，仅保留身份信息: %s (%s)", path, e)
        return InstalledPackageRecord(identity=identity)
    if desc.identity != identity:
        logger.warning(
            "安装元数据与目录名不一致，仅保留身份信息: %s (元数据为 %s)",
            path, desc.identity,
        )
        return InstalledPackageRecord(identity=identity)
    return InstalledPackageRecord.from_description(desc)


class InstalledIndex:
    """已安装包索引 — 只由 PackageManager 持有和修改"""

    def __init__(self) -> None:
        self._records: dict[str, InstalledPackageRecord] = {}

    def rebuild(self, store: ResolvedStore) -> dict[str, InstalledPackageRecord]:
        """清空并从 installed/ 目录重建索引

        目录名按最后一个分隔符拆分；无分隔符或身份非法的目录跳过。

        Raises:
            StoreError: installed/ 目录无法遍历
        """
        self._records.clear()
        try:
            entries = sorted(store.installed_dir.iterdir())
        except OSError as e:
            raise StoreError(f"无法读取安装目录 {store.installed_dir}: {e}") from e

        for entry in entries:
            if not entry.is_dir():
                continue
            try:
                identity = PackageIdentity.from_key(entry.name)
            except ManifestError as e:
                logger.warning("跳过无法识别的安装目录: %s (%s)", entry.name, e)
                continue
            if identity is None:
                logger.warning("跳过无法识别的安装目录: %s", entry.name)
                continue
            self._records[identity.key] = read_metadata(entry, identity)

        logger.info("已加载 %d 个已安装包", len(self._records))
        return dict(self._records)

    # ---- 读写 ----

    def add(self, record: InstalledPackageRecord) -> None:
        self._records[record.identity.key] = record

    def discard(self, key: str) -> None:
        self._records.pop(key, None)

    def get(self, key: str) -> InstalledPackageRecord | None:
        return self._records.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> list[InstalledPackageRecord]:
        return [self._records[k] for k in sorted(self._records)]

    def by_name(self, name: str) -> list[InstalledPackageRecord]:
        return [r for r in self.records() if r.name == name]
