"""安装流水线

阶段严格按序执行:
  fetch → extract → build → record

任一阶段失败即抛出该阶段的异常，后续阶段不再执行；
已写入存储的部分内容（下载文件、构建目录、安装前缀）保持原样，不回滚。
record 阶段只写元数据文件，不复制文件（安装由最后的构建步骤完成）。
"""

from __future__ import annotations

import logging
import shutil
from enum import Enum

from simplex.core.config import Config
from simplex.core.exceptions import SimplexError, StoreError
from simplex.core.index import write_metadata
from simplex.core.manifest.models import InstalledPackageRecord, PackageDescription
from simplex.core.store import ResolvedStore
from simplex.services.pipeline.builder import StepRunner, prepare_steps
from simplex.services.pipeline.extractor import SourceExtractor
from simplex.services.pipeline.fetcher import SourceFetcher
from simplex.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    FETCH = "fetch"
    EXTRACT = "extract"
    BUILD = "build"
    RECORD = "record"


class BuildPipeline:
    """单个包的拉取 / 解压 / 构建 / 记录流水线"""

    def __init__(
        self, store: ResolvedStore, config: Config, executor: CommandExecutor,
    ) -> None:
        self.store = store
        self.config = config
        self.fetcher = SourceFetcher(
            store, executor, config.download_command,
            timeout=config.timeout_or_none(config.download_timeout),
        )
        self.extractor = SourceExtractor()
        self.runner = StepRunner(
            executor, timeout=config.timeout_or_none(config.step_timeout),
        )
        self.stage: Stage | None = None

    def run(self, desc: PackageDescription) -> InstalledPackageRecord:
        """执行完整流水线，成功返回安装记录

        Raises:
            SimplexError: 失败阶段对应的异常
        """
        identity = desc.identity
        install_path = self.store.install_path(identity)
        scratch = self.store.build_scratch_path(identity)
        try:
            self.stage = Stage.FETCH
            logger.info("[%s] 拉取源码: %s", identity, desc.source.url)
            archive = self.fetcher.fetch(desc.source)

            self.stage = Stage.EXTRACT
            logger.info("[%s] 解压源码", identity)
            source_dir = self.extractor.extract(archive, scratch, desc.source.root)

            self.stage = Stage.BUILD
            steps = prepare_steps(desc.build.arguments, desc.build.system, install_path)
            logger.info(
                "[%s] 构建 (system=%s, %d 步)", identity, desc.build.system, len(steps),
            )
            duration = self.runner.run_steps(steps, source_dir, install_path)

            self.stage = Stage.RECORD
            try:
                install_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StoreError(f"无法创建安装目录 {install_path}: {e}") from e
            write_metadata(install_path, desc)
        except SimplexError as e:
            logger.error("[%s] %s 阶段失败: %s", identity, self.stage.value, e)
            raise

        if not self.config.keep_build_dirs:
            shutil.rmtree(scratch, ignore_errors=True)
        logger.info("[%s] 安装完成: %s (构建 %.1fs)", identity, install_path, duration)
        return InstalledPackageRecord.from_description(desc)
