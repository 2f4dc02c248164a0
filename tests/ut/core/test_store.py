"""存储布局单元测试"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from simplex.core.exceptions import StoreError, ValidationError
from simplex.core.manifest import PackageIdentity, SourceSpec
from simplex.core.store import ensure_layout


class TestEnsureLayout:
    def test_creates_fixed_children(self, tmp_path: Path) -> None:
        store = ensure_layout(tmp_path / "store")
        for d in ("downloads", "builds", "installed"):
            assert (tmp_path / "store" / d).is_dir()
        assert store.root == tmp_path / "store"

    def test_idempotent(self, tmp_path: Path) -> None:
        first = ensure_layout(tmp_path / "store")
        marker = first.installed_dir / "sqlite-3.36.0"
        marker.mkdir()
        before = sorted(p.relative_to(tmp_path) for p in tmp_path.rglob("*"))

        second = ensure_layout(tmp_path / "store")

        after = sorted(p.relative_to(tmp_path) for p in tmp_path.rglob("*"))
        assert second == first
        assert before == after

    def test_relative_root_resolved_against_cwd(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        store = ensure_layout("store")
        assert store.root.is_absolute()
        assert store.root == tmp_path / "store"

    def test_file_in_the_way(self, tmp_path: Path) -> None:
        (tmp_path / "store").write_text("not a dir")
        with pytest.raises(StoreError, match="无法创建存储目录"):
            ensure_layout(tmp_path / "store")

    def test_working_directory_untouched(self, tmp_path: Path) -> None:
        cwd = os.getcwd()
        ensure_layout(tmp_path / "store")
        assert os.getcwd() == cwd


class TestPaths:
    @pytest.fixture()
    def store(self, tmp_path: Path):
        return ensure_layout(tmp_path / "store")

    def test_download_path_uses_url_filename(self, store) -> None:
        src = SourceSpec(
            url="https://www.sqlite.org/2021/sqlite-autoconf-3360000.tar.gz?x=1",
            checksum="abc",
        )
        assert store.download_path(src) == store.downloads_dir / "sqlite-autoconf-3360000.tar.gz"

    def test_download_path_without_filename(self, store) -> None:
        with pytest.raises(ValidationError, match="文件名"):
            store.download_path(SourceSpec(url="https://example.com/", checksum="abc"))

    def test_build_and_install_paths(self, store) -> None:
        ident = PackageIdentity("sqlite", "3.36.0")
        assert store.build_scratch_path(ident) == store.builds_dir / "sqlite-3.36.0-build"
        assert store.install_path(ident) == store.installed_dir / "sqlite-3.36.0"
        assert not store.install_path(ident).exists()
