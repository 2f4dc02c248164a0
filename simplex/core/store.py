"""存储目录布局

<root>/
  downloads/                      下载的源码包
  builds/<name>-<version>-build/  解压与构建临时目录
  installed/<name>-<version>/     每个包的安装前缀

ensure_layout() 幂等创建目录；ResolvedStore 上的路径计算均为纯函数。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from simplex.core.exceptions import StoreError
from simplex.core.manifest.models import PackageIdentity, SourceSpec
from simplex.utils.net import url_filename

logger = logging.getLogger(__name__)

DOWNLOADS_DIR = "downloads"
BUILDS_DIR = "builds"
INSTALLED_DIR = "installed"
BUILD_DIR_SUFFIX = "-build"


@dataclass(frozen=True)
class ResolvedStore:
    """已解析为绝对路径的存储根目录"""

    root: Path

    @property
    def downloads_dir(self) -> Path:
        return self.root / DOWNLOADS_DIR

    @property
    def builds_dir(self) -> Path:
        return self.root / BUILDS_DIR

    @property
    def installed_dir(self) -> Path:
        return self.root / INSTALLED_DIR

    def download_path(self, source: SourceSpec) -> Path:
        return self.downloads_dir / url_filename(source.url)

    def build_scratch_path(self, identity: PackageIdentity) -> Path:
        return self.builds_dir / f"{identity.key}{BUILD_DIR_SUFFIX}"

    def install_path(self, identity: PackageIdentity) -> Path:
        return self.installed_dir / identity.key


def ensure_layout(root: str | Path) -> ResolvedStore:
    """解析存储根目录并创建固定子目录

    相对路径按调用时的工作目录解析。目录已存在不视为错误。

    Raises:
        StoreError: 目录无法创建（如路径被普通文件占用、无权限）
    """
    store = ResolvedStore(root=Path(root).expanduser().absolute())
    for d in (store.root, store.downloads_dir, store.builds_dir, store.installed_dir):
        if d.is_dir():
            continue
        try:
            d.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"无法创建存储目录 {d}: {e}") from e
        logger.info("已创建目录: %s", d)
    return store
