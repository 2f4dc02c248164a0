"""安装流水线模块

拆分说明:
- fetcher.py: 下载与校验
- extractor.py: 解压与源码根目录识别
- builder.py: 前缀注入与构建步骤执行
- pipeline.py: 阶段编排
"""

from simplex.services.pipeline.builder import StepRunner, inject_prefix, register_prefix_rule
from simplex.services.pipeline.extractor import SourceExtractor
from simplex.services.pipeline.fetcher import SourceFetcher
from simplex.services.pipeline.pipeline import BuildPipeline, Stage

__all__ = [
    "BuildPipeline",
    "SourceExtractor",
    "SourceFetcher",
    "Stage",
    "StepRunner",
    "inject_prefix",
    "register_prefix_rule",
]
