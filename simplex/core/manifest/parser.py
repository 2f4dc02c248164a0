"""清单解析器

把 YAML 清单文档解析为 PackageDescription:
- package / source / build 三段必填，缺失时报出段名
- dependencies 可省略，视为空
- 字段按期望类型提取，不做隐式转换（version: 3.36 是类型错误而非缺失）

parse() / dump() 不接触文件系统；load_manifest() 负责读文件。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from simplex.core.exceptions import FieldTypeError, ManifestError, MissingFieldError
from simplex.core.manifest.models import (
    BuildSpec,
    PackageDescription,
    PackageIdentity,
    SourceSpec,
)
from simplex.utils.yaml_io import dump_yaml, read_text_limited

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("package", "source", "build")


def _type_name(value: Any) -> str:
    return type(value).__name__


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _section(doc: dict[str, Any], name: str) -> dict[str, Any]:
    value = doc[name]
    if not isinstance(value, dict):
        raise FieldTypeError(
            f"段 {name} 应为映射，实际为 {_type_name(value)}",
            section=name, expected="mapping", actual=_type_name(value),
        )
    return value


def _require_str(data: dict[str, Any], section: str, field: str) -> str:
    if field not in data:
        raise MissingFieldError(
            f"缺少必填字段: {section}.{field}", section=section, field=field,
        )
    value = data[field]
    if not _is_str(value):
        raise FieldTypeError(
            f"字段 {section}.{field} 应为字符串，实际为 {_type_name(value)} ({value!r})",
            section=section, field=field, expected="string", actual=_type_name(value),
        )
    return value


def _optional_str(data: dict[str, Any], section: str, field: str) -> str | None:
    if data.get(field) is None:
        return None
    return _require_str(data, section, field)


def _require_str_list(data: dict[str, Any], section: str, field: str) -> tuple[str, ...]:
    if field not in data:
        raise MissingFieldError(
            f"缺少必填字段: {section}.{field}", section=section, field=field,
        )
    value = data[field]
    if not isinstance(value, list):
        raise FieldTypeError(
            f"字段 {section}.{field} 应为字符串列表，实际为 {_type_name(value)}",
            section=section, field=field, expected="list[string]", actual=_type_name(value),
        )
    for i, item in enumerate(value):
        if not _is_str(item):
            raise FieldTypeError(
                f"字段 {section}.{field}[{i}] 应为字符串，实际为 {_type_name(item)} ({item!r})",
                section=section, field=field, expected="string", actual=_type_name(item),
            )
    return tuple(value)


def _dependencies(doc: dict[str, Any]) -> dict[str, str]:
    raw = doc.get("dependencies")
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise FieldTypeError(
            f"段 dependencies 应为映射，实际为 {_type_name(raw)}",
            section="dependencies", expected="mapping", actual=_type_name(raw),
        )
    deps: dict[str, str] = {}
    for name, constraint in raw.items():
        if not _is_str(name):
            raise FieldTypeError(
                f"依赖名应为字符串，实际为 {_type_name(name)} ({name!r})",
                section="dependencies", field=str(name),
                expected="string", actual=_type_name(name),
            )
        deps[name] = _require_str(raw, "dependencies", name)
    return deps


def parse_dict(doc: Any) -> PackageDescription:
    """校验已加载的文档结构并构造 PackageDescription"""
    if doc is None:
        raise ManifestError("清单为空")
    if not isinstance(doc, dict):
        raise ManifestError(f"清单顶层应为映射，实际为 {_type_name(doc)}")

    for name in REQUIRED_SECTIONS:
        if name not in doc or doc[name] is None:
            raise MissingFieldError(f"缺少必填段: {name}", section=name)

    package = _section(doc, "package")
    source = _section(doc, "source")
    build = _section(doc, "build")

    identity = PackageIdentity(
        name=_require_str(package, "package", "name"),
        version=_require_str(package, "package", "version"),
    )
    source_spec = SourceSpec(
        url=_require_str(source, "source", "url"),
        checksum=_require_str(source, "source", "checksum"),
        root=_optional_str(source, "source", "root"),
    )
    build_spec = BuildSpec(
        system=_require_str(build, "build", "system"),
        arguments=_require_str_list(build, "build", "arguments"),
    )
    return PackageDescription(
        identity=identity,
        source=source_spec,
        build=build_spec,
        dependencies=_dependencies(doc),
    )


def parse(document: str) -> PackageDescription:
    """解析清单文本

    Raises:
        MissingFieldError: 缺少段或字段
        FieldTypeError: 字段类型不符
        ManifestError: 文档不是合法 YAML 映射，或身份字段非法
    """
    try:
        doc = yaml.safe_load(document)
    except yaml.YAMLError as e:
        raise ManifestError(f"清单不是合法的 YAML: {e}") from e
    return parse_dict(doc)


def dump(description: PackageDescription) -> str:
    """序列化为清单文本，parse(dump(d)) == d"""
    return dump_yaml(description.to_dict())


def load_manifest(path: str | Path) -> PackageDescription:
    """读取并解析清单文件"""
    p = Path(path)
    try:
        text = read_text_limited(p)
    except (OSError, ValueError) as e:
        raise ManifestError(f"无法读取清单 {p}: {e}") from e
    desc = parse(text)
    logger.info("清单已加载: %s (%s)", p, desc.identity)
    return desc
