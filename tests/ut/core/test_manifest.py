"""清单解析单元测试"""

from __future__ import annotations

import pytest
import yaml

from simplex.core.exceptions import FieldTypeError, ManifestError, MissingFieldError
from simplex.core.manifest import (
    BuildSpec,
    PackageDescription,
    PackageIdentity,
    SourceSpec,
    dump,
    load_manifest,
    parse,
)

SQLITE_MANIFEST = """
package:
  name: sqlite
  version: "3.36.0"
source:
  url: https://www.sqlite.org/2021/sqlite-autoconf-3360000.tar.gz
  checksum: "sha256:bd90c3eb96bee996206b83be7065c9ce19aef38c3f4fb53073ada0d0b69bbce3"
build:
  system: autotools
  arguments:
    - ./configure
    - make
    - make install
dependencies:
  zlib: "^1.2"
  readline: ">=6.0"
"""


def _doc(**overrides) -> str:
    data = yaml.safe_load(SQLITE_MANIFEST)
    for key, value in overrides.items():
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
    return yaml.safe_dump(data)


class TestParse:
    def test_full_manifest(self) -> None:
        desc = parse(SQLITE_MANIFEST)
        assert desc.identity == PackageIdentity("sqlite", "3.36.0")
        assert desc.source.url.endswith("sqlite-autoconf-3360000.tar.gz")
        assert desc.source.root is None
        assert desc.build.system == "autotools"
        assert desc.build.arguments == ("./configure", "make", "make install")
        assert desc.dependencies == {"zlib": "^1.2", "readline": ">=6.0"}

    @pytest.mark.parametrize("section", ["package", "source", "build"])
    def test_missing_section_named(self, section: str) -> None:
        with pytest.raises(MissingFieldError, match=section) as exc:
            parse(_doc(**{section: None}))
        assert exc.value.section == section
        assert exc.value.field == ""

    def test_missing_dependencies_is_empty(self) -> None:
        desc = parse(_doc(dependencies=None))
        assert desc.dependencies == {}

    def test_null_dependencies_is_empty(self) -> None:
        text = SQLITE_MANIFEST.split("dependencies:")[0] + "dependencies:\n"
        assert parse(text).dependencies == {}

    def test_numeric_version_is_type_error(self) -> None:
        text = SQLITE_MANIFEST.replace('version: "3.36.0"', "version: 3.36")
        with pytest.raises(FieldTypeError, match="version") as exc:
            parse(text)
        assert exc.value.section == "package"
        assert exc.value.field == "version"
        assert exc.value.actual == "float"

    def test_missing_field_distinct_from_type_error(self) -> None:
        with pytest.raises(MissingFieldError) as exc:
            parse(_doc(package={"name": "sqlite"}))
        assert not isinstance(exc.value, FieldTypeError)
        assert exc.value.field == "version"

    def test_arguments_must_be_list_of_strings(self) -> None:
        build = {"system": "make", "arguments": ["make", 42]}
        with pytest.raises(FieldTypeError, match=r"build\.arguments\[1\]"):
            parse(_doc(build=build))

    def test_arguments_string_rejected(self) -> None:
        with pytest.raises(FieldTypeError, match="arguments"):
            parse(_doc(build={"system": "make", "arguments": "make install"}))

    def test_bool_not_accepted_as_string(self) -> None:
        source = {"url": "https://x/y.tar.gz", "checksum": True}
        with pytest.raises(FieldTypeError, match="checksum"):
            parse(_doc(source=source))

    def test_dependency_constraint_type(self) -> None:
        with pytest.raises(FieldTypeError, match="zlib") as exc:
            parse(_doc(dependencies={"zlib": 1.2}))
        assert exc.value.section == "dependencies"

    def test_section_must_be_mapping(self) -> None:
        with pytest.raises(FieldTypeError, match="source"):
            parse(_doc(source=["https://x"]))

    def test_empty_checksum_rejected(self) -> None:
        with pytest.raises(ManifestError, match="checksum"):
            parse(_doc(source={"url": "https://x/y.tar.gz", "checksum": ""}))

    @pytest.mark.parametrize("bad", ["sqlite-dev", "a/b", "..", ""])
    def test_invalid_name_rejected(self, bad: str) -> None:
        with pytest.raises(ManifestError, match="name"):
            parse(_doc(package={"name": bad, "version": "1.0"}))

    def test_version_with_separator_rejected(self) -> None:
        with pytest.raises(ManifestError, match="version"):
            parse(_doc(package={"name": "sqlite", "version": "3.36-rc1"}))

    @pytest.mark.parametrize("text", ["", "- a\n- b\n", "package: [unclosed\n"])
    def test_not_a_mapping(self, text: str) -> None:
        with pytest.raises(ManifestError):
            parse(text)

    def test_source_root_optional(self) -> None:
        source = {"url": "https://x/y.tar.gz", "checksum": "abc", "root": "y-src"}
        assert parse(_doc(source=source)).source.root == "y-src"


class TestDump:
    @pytest.mark.parametrize("overrides", [
        {},
        {"dependencies": None},
        {"source": {"url": "https://x/y.zip", "checksum": "md5:00ff", "root": "y"}},
        {"package": {"name": "zlib", "version": "1.3"}},
        {"build": {"system": "cmake", "arguments": []}},
    ])
    def test_round_trip(self, overrides: dict) -> None:
        desc = parse(_doc(**overrides))
        assert parse(dump(desc)) == desc

    def test_string_version_stays_string(self) -> None:
        desc = parse(_doc(package={"name": "zlib", "version": "1.3"}))
        assert parse(dump(desc)).version == "1.3"


class TestLoadManifest:
    def test_load_from_file(self, tmp_path) -> None:
        path = tmp_path / "sqlite.yml"
        path.write_text(SQLITE_MANIFEST, encoding="utf-8")
        assert load_manifest(path).name == "sqlite"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ManifestError, match="无法读取清单"):
            load_manifest(tmp_path / "nope.yml")


class TestPackageIdentity:
    def test_key(self) -> None:
        assert PackageIdentity("sqlite", "3.36.0").key == "sqlite-3.36.0"

    def test_from_key_splits_on_last_separator(self) -> None:
        assert PackageIdentity.from_key("sqlite-3.36.0") == PackageIdentity("sqlite", "3.36.0")

    def test_from_key_without_separator(self) -> None:
        assert PackageIdentity.from_key("weirdname") is None

    def test_immutable(self) -> None:
        ident = PackageIdentity("sqlite", "3.36.0")
        with pytest.raises(AttributeError):
            ident.name = "other"  # type: ignore[misc]


class TestPackageDescription:
    def test_dependencies_read_only(self) -> None:
        desc = parse(SQLITE_MANIFEST)
        with pytest.raises(TypeError):
            desc.dependencies["openssl"] = ">=1.1"  # type: ignore[index]
        assert "openssl" not in desc.dependencies

    def test_dependencies_copied_from_input(self) -> None:
        deps = {"zlib": "^1.2"}
        desc = PackageDescription(
            identity=PackageIdentity("sqlite", "3.36.0"),
            source=SourceSpec(url="https://x/y.tar.gz", checksum="abc"),
            build=BuildSpec(system="make"),
            dependencies=deps,
        )
        deps["openssl"] = ">=1.1"
        assert desc.dependencies == {"zlib": "^1.2"}
        assert desc.to_dict()["dependencies"] == {"zlib": "^1.2"}
