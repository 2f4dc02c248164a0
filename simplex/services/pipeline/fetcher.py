"""源码拉取

职责:
- 调用外部下载工具把源码包下载到 downloads/
- 校验和验证（必做，不匹配即删除产物并失败）
- 已下载且校验通过的产物直接复用
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from simplex.core.exceptions import ChecksumMismatchError, DownloadError, ValidationError
from simplex.core.manifest.models import SourceSpec
from simplex.core.store import ResolvedStore
from simplex.utils.net import validate_url_scheme
from simplex.utils.shell import CommandExecutor, command_text, run_tool

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "sha256"


def split_checksum(checksum: str) -> tuple[str, str]:
    """拆分 "algo:hex"，裸 hex 视为 sha256

    Raises:
        ValidationError: hashlib 不支持的算法
    """
    algo, sep, digest = checksum.partition(":")
    if not sep:
        algo, digest = DEFAULT_ALGORITHM, checksum
    algo = algo.strip().lower()
    if algo not in hashlib.algorithms_available:
        raise ValidationError(f"不支持的校验算法: {algo}")
    return algo, digest.strip().lower()


def file_digest(path: Path, algo: str) -> str:
    h = hashlib.new(algo)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


class SourceFetcher:
    """源码拉取器 — 外部下载工具 + 校验"""

    def __init__(
        self,
        store: ResolvedStore,
        executor: CommandExecutor,
        command: list[str],
        timeout: float | None = None,
    ) -> None:
        self.store = store
        self.executor = executor
        self.command = command
        self.timeout = timeout

    def fetch(self, source: SourceSpec) -> Path:
        """下载并校验源码包，返回本地路径

        Raises:
            ValidationError: URL 协议不允许或无法解析文件名
            DownloadError: 下载工具失败
            ChecksumMismatchError: 校验和不匹配
        """
        validate_url_scheme(source.url, context="source.url")
        algo, expected = split_checksum(source.checksum)
        dest = self.store.download_path(source)

        if dest.is_file():
            if file_digest(dest, algo) == expected:
                logger.info("  缓存命中: %s", dest)
                return dest
            logger.warning("  缓存文件校验不符，重新下载: %s", dest)
            dest.unlink()

        logger.info("  下载: %s", source.url)
        cmd = [part.format(url=source.url, dest=str(dest)) for part in self.command]
        try:
            run_tool(
                self.executor, cmd,
                cwd=str(self.store.downloads_dir), timeout=self.timeout,
                label="下载", error_cls=DownloadError,
            )
        except DownloadError:
            dest.unlink(missing_ok=True)
            raise

        if not dest.is_file():
            raise DownloadError(
                f"下载工具未生成文件: {dest}", command=command_text(cmd),
            )

        self.verify(dest, source.checksum)
        logger.info("  已保存: %s", dest)
        return dest

    def verify(self, path: Path, checksum: str) -> None:
        """校验文件摘要，不匹配时删除文件"""
        algo, expected = split_checksum(checksum)
        actual = file_digest(path, algo)
        if actual != expected:
            path.unlink(missing_ok=True)
            raise ChecksumMismatchError(
                f"校验和不匹配 {path.name}: 期望 {algo}:{expected}, 实际 {algo}:{actual}",
                expected=expected, actual=actual,
            )
        logger.info("  校验和通过: %s", path.name)
