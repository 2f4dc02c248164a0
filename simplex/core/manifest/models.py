"""包描述数据模型

数据类:
- PackageIdentity: 包身份 (name, version)，key 同时是 installed/ 下的目录名
- SourceSpec: 源码地址 + 校验和
- BuildSpec: 构建系统 + 构建步骤
- PackageDescription: 解析并校验后的完整清单
- InstalledPackageRecord: 已安装包记录（元数据可能未知）
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from simplex.core.exceptions import ManifestError

# 包身份分隔符: "{name}-{version}"
KEY_SEPARATOR = "-"

_FORBIDDEN_CHARS = (KEY_SEPARATOR, "/", "\\")


def _check_identity_part(value: str, field_name: str) -> None:
    if not value:
        raise ManifestError(
            f"package.{field_name} 不能为空", section="package", field=field_name,
        )
    if value in (".", ".."):
        raise ManifestError(
            f"package.{field_name} 非法: {value!r}", section="package", field=field_name,
        )
    for ch in _FORBIDDEN_CHARS:
        if ch in value:
            raise ManifestError(
                f"package.{field_name} 不能包含 {ch!r}: {value!r}",
                section="package", field=field_name,
            )


@dataclass(frozen=True)
class PackageIdentity:
    """包身份，构造后不可变

    name / version 都不能包含分隔符，否则 key 与目录名无法互相还原。
    """

    name: str
    version: str

    def __post_init__(self) -> None:
        _check_identity_part(self.name, "name")
        _check_identity_part(self.version, "version")

    @property
    def key(self) -> str:
        return f"{self.name}{KEY_SEPARATOR}{self.version}"

    @classmethod
    def from_key(cls, key: str) -> PackageIdentity | None:
        """按最后一个分隔符拆分 key，无分隔符返回 None

        拆分后的 name 仍含分隔符时构造失败，抛 ManifestError。
        """
        name, sep, version = key.rpartition(KEY_SEPARATOR)
        if not sep:
            return None
        return cls(name=name, version=version)

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class SourceSpec:
    """源码来源

    checksum 形如 "sha256:<hex>" 或裸 "<hex>"（默认 sha256），
    由流水线在下载后校验。root 为可选的归档内顶层目录名。
    """

    url: str
    checksum: str
    root: str | None = None

    def __post_init__(self) -> None:
        if not self.checksum:
            raise ManifestError(
                "source.checksum 不能为空", section="source", field="checksum",
            )


@dataclass(frozen=True)
class BuildSpec:
    """构建规格，system 不做枚举限制"""

    system: str
    arguments: tuple[str, ...] = ()


@dataclass(frozen=True)
class PackageDescription:
    """解析后的清单，流水线执行所需的全部信息

    dependencies 在构造时复制为只读映射，构造后不可修改。
    """

    identity: PackageIdentity
    source: SourceSpec
    build: BuildSpec
    dependencies: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", MappingProxyType(dict(self.dependencies)))

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def version(self) -> str:
        return self.identity.version

    def to_dict(self) -> dict[str, Any]:
        """转换为清单文档结构（dump 的输入）"""
        source: dict[str, Any] = {
            "url": self.source.url,
            "checksum": self.source.checksum,
        }
        if self.source.root is not None:
            source["root"] = self.source.root
        return {
            "package": {"name": self.name, "version": self.version},
            "source": source,
            "build": {
                "system": self.build.system,
                "arguments": list(self.build.arguments),
            },
            "dependencies": dict(self.dependencies),
        }


@dataclass
class InstalledPackageRecord:
    """已安装包记录

    仅能从目录名恢复时，dependencies / build_steps / source 为 None，
    表示"未知"，与"没有依赖"（空字典）区分开。
    """

    identity: PackageIdentity
    dependencies: dict[str, str] | None = None
    build_steps: list[str] | None = None
    source: SourceSpec | None = None

    @property
    def has_metadata(self) -> bool:
        return self.source is not None

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def version(self) -> str:
        return self.identity.version

    @classmethod
    def from_description(cls, desc: PackageDescription) -> InstalledPackageRecord:
        return cls(
            identity=desc.identity,
            dependencies=dict(desc.dependencies),
            build_steps=list(desc.build.arguments),
            source=desc.source,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "dependencies": self.dependencies,
            "build_steps": self.build_steps,
            "url": self.source.url if self.source else None,
            "checksum": self.source.checksum if self.source else None,
        }
