"""测试辅助 — 本地源码包生成 + 假下载器

下载命令被重定向为本地文件复制，构建步骤仍由真实 sh 执行，
因此测试既不访问网络，又能覆盖真实的子进程行为。
"""

from __future__ import annotations

import hashlib
import io
import shutil
import tarfile
import zipfile
from pathlib import Path

from simplex.core.manifest.models import (
    BuildSpec,
    PackageDescription,
    PackageIdentity,
    SourceSpec,
)
from simplex.utils.shell import CommandResult, LocalExecutor

DEMO_URL = "https://example.com/src/demo-1.0.tar.gz"

CONFIGURE_SCRIPT = """#!/bin/sh
for arg in "$@"; do
  case "$arg" in
    --prefix=*) echo "${arg#--prefix=}" > prefix.txt ;;
  esac
done
"""

DEMO_STEPS = (
    "./configure",
    "echo built > built.txt",
    'mkdir -p "$(cat prefix.txt)/bin" && cp built.txt "$(cat prefix.txt)/bin/demo"',
)


def sha256_of(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def make_tarball(dest: Path, files: dict[str, tuple[str, int]]) -> Path:
    """按 {归档内路径: (内容, 权限)} 生成 tar.gz"""
    dest.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(dest, "w:gz") as tf:
        for name, (content, mode) in files.items():
            data = content.encode("utf-8")
            ti = tarfile.TarInfo(name)
            ti.size = len(data)
            ti.mode = mode
            tf.addfile(ti, io.BytesIO(data))
    return dest


def make_zipball(dest: Path, files: dict[str, tuple[str, int]]) -> Path:
    """按 {归档内路径: (内容, 权限)} 生成 zip，权限写入 external_attr"""
    dest.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(dest, "w") as zf:
        for name, (content, mode) in files.items():
            zi = zipfile.ZipInfo(name)
            zi.external_attr = (0o100000 | mode) << 16
            zf.writestr(zi, content)
    return dest


class FakeDownloader:
    """curl 调用改为复制本地文件，其余命令交给 LocalExecutor"""

    def __init__(self, artifacts: dict[str, Path] | None = None) -> None:
        self.artifacts = artifacts or {}
        self.downloads: list[str] = []
        self.commands: list[list[str] | str] = []
        self._real = LocalExecutor()

    def execute(self, cmd, *, cwd=".", env=None, timeout=None) -> CommandResult:
        self.commands.append(cmd)
        if isinstance(cmd, list) and cmd and cmd[0] == "curl":
            url = cmd[-1]
            dest = cmd[cmd.index("-o") + 1]
            self.downloads.append(url)
            src = self.artifacts.get(url)
            if src is None:
                return CommandResult(22, "", "curl: (22) The requested URL returned error: 404")
            shutil.copyfile(src, dest)
            return CommandResult(0, "", "")
        return self._real.execute(cmd, cwd=cwd, env=env, timeout=timeout)

    @property
    def shell_steps(self) -> list[str]:
        return [c[2] for c in self.commands if isinstance(c, list) and c[:2] == ["sh", "-c"]]


def make_description(
    archive: Path, *, url: str = DEMO_URL, name: str = "demo", version: str = "1.0",
    steps: tuple[str, ...] = DEMO_STEPS, system: str = "autotools",
    dependencies: dict[str, str] | None = None, root: str | None = None,
    checksum: str | None = None,
) -> PackageDescription:
    return PackageDescription(
        identity=PackageIdentity(name=name, version=version),
        source=SourceSpec(
            url=url,
            checksum=checksum or f"sha256:{sha256_of(archive)}",
            root=root,
        ),
        build=BuildSpec(system=system, arguments=steps),
        dependencies=dependencies or {},
    )


