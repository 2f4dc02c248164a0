"""测试共享 fixture"""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers import CONFIGURE_SCRIPT, DEMO_URL, FakeDownloader, make_tarball


@pytest.fixture()
def demo_archive(tmp_path: Path) -> Path:
    return make_tarball(tmp_path / "upstream" / "demo-1.0.tar.gz", {
        "demo-1.0/configure": (CONFIGURE_SCRIPT, 0o755),
        "demo-1.0/README": ("demo package\n", 0o644),
    })


@pytest.fixture()
def downloader(demo_archive: Path) -> FakeDownloader:
    return FakeDownloader({DEMO_URL: demo_archive})


@pytest.fixture()
def store_root(tmp_path: Path) -> Path:
    return tmp_path / "store"
