"""清单模块

- models.py: 包身份 / 源码 / 构建 / 已安装记录数据模型
- parser.py: YAML 清单解析与序列化
"""

from simplex.core.manifest.models import (
    BuildSpec,
    InstalledPackageRecord,
    PackageDescription,
    PackageIdentity,
    SourceSpec,
)
from simplex.core.manifest.parser import dump, load_manifest, parse

__all__ = [
    "BuildSpec",
    "InstalledPackageRecord",
    "PackageDescription",
    "PackageIdentity",
    "SourceSpec",
    "dump",
    "load_manifest",
    "parse",
]
