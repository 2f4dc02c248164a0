"""源码解压

把下载的源码包解压到 builds/<key>-build/，并确定源码根目录:
- 清单声明了 source.root 时使用它（必须存在）
- 否则要求解压结果恰好一个顶层目录，零个或多个都拒绝
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import zipfile
from pathlib import Path, PurePosixPath

from simplex.core.exceptions import ArchiveLayoutError, ExtractError

logger = logging.getLogger(__name__)

TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz")


def _check_zip_members(zf: zipfile.ZipFile) -> None:
    for name in zf.namelist():
        p = PurePosixPath(name)
        if p.is_absolute() or ".." in p.parts:
            raise ExtractError(f"压缩包包含非法路径: {name}")


def _restore_zip_modes(zf: zipfile.ZipFile, dest: Path) -> None:
    """zipfile 解压不保留权限位，按 external_attr 高 16 位恢复（如 configure 的可执行位）"""
    for info in zf.infolist():
        mode = (info.external_attr >> 16) & 0o777
        if mode and not info.is_dir():
            os.chmod(dest / info.filename, mode)


def extract_archive(archive: Path, dest: Path) -> None:
    """按格式解压到 dest

    Raises:
        ExtractError: 格式不支持或压缩包损坏
    """
    name = archive.name.lower()
    try:
        if name.endswith(".zip"):
            with zipfile.ZipFile(archive) as zf:
                _check_zip_members(zf)
                zf.extractall(path=str(dest))
                _restore_zip_modes(zf, dest)
        elif name.endswith(TAR_SUFFIXES) or tarfile.is_tarfile(archive):
            with tarfile.open(archive) as tf:
                tf.extractall(path=str(dest), filter="data")  # noqa: S202
        else:
            raise ExtractError(f"不支持的压缩包格式: {archive.name}")
    except (OSError, tarfile.TarError, zipfile.BadZipFile) as e:
        raise ExtractError(f"解压失败 {archive.name}: {e}") from e


def detect_source_root(scratch: Path, declared: str | None = None) -> Path:
    """确定解压后的源码根目录

    Raises:
        ArchiveLayoutError: 声明的目录不存在，或顶层条目不是唯一目录
    """
    if declared is not None:
        root = scratch / declared
        if not root.is_dir() or scratch.resolve() not in root.resolve().parents:
            raise ArchiveLayoutError(f"声明的源码根目录不存在: {declared}")
        return root

    entries = sorted(scratch.iterdir())
    if not entries:
        raise ArchiveLayoutError("解压结果为空，无法确定源码根目录")
    if len(entries) > 1:
        names = ", ".join(e.name for e in entries[:5])
        raise ArchiveLayoutError(
            f"解压结果包含 {len(entries)} 个顶层条目 ({names})，"
            "请在 source.root 中声明源码根目录"
        )
    if not entries[0].is_dir():
        raise ArchiveLayoutError(f"唯一顶层条目不是目录: {entries[0].name}")
    return entries[0]


class SourceExtractor:
    """解压器"""

    def extract(self, archive: Path, scratch: Path, declared_root: str | None = None) -> Path:
        """重建临时目录、解压并返回源码根目录"""
        if scratch.exists():
            logger.info("  清理旧构建目录: %s", scratch)
            try:
                shutil.rmtree(scratch)
            except OSError as e:
                raise ExtractError(f"无法清理构建目录 {scratch}: {e}") from e
        try:
            scratch.mkdir(parents=True)
        except OSError as e:
            raise ExtractError(f"无法创建构建目录 {scratch}: {e}") from e

        logger.info("  解压: %s -> %s", archive.name, scratch)
        extract_archive(archive, scratch)
        root = detect_source_root(scratch, declared_root)
        logger.info("  源码根目录: %s", root)
        return root
