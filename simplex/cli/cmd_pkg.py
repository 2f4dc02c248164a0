"""CLI — 包安装 / 删除 / 查询命令"""

from __future__ import annotations

import functools
import json
from typing import Any, Callable

import click

from simplex.core.exceptions import SimplexError


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(remove)
    group.add_command(list_packages)
    group.add_command(info)
    group.add_command(check)


def _friendly_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """把业务异常转换为 click 错误输出（退出码 1）"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except SimplexError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e

    return wrapper


@click.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
@_friendly_errors
def install(state: Any, manifest: str) -> None:
    """按清单拉取、构建并安装包"""
    record = state.manager.install_manifest(manifest)
    path = state.manager.store.install_path(record.identity)
    click.echo(f"已安装: {record.identity} -> {path}")


@click.command()
@click.argument("name")
@click.argument("version")
@click.pass_obj
@_friendly_errors
def remove(state: Any, name: str, version: str) -> None:
    """删除已安装包"""
    state.manager.remove(name, version)
    click.echo(f"已删除: {name} {version}")


@click.command(name="list")
@click.pass_obj
@_friendly_errors
def list_packages(state: Any) -> None:
    """列出已安装包"""
    identities = state.manager.list()
    if not identities:
        click.echo("没有已安装的包。")
        return
    for ident in identities:
        click.echo(f"  {ident.name:24s} {ident.version}")


@click.command()
@click.argument("name")
@click.option("--version", "version", default=None, help="指定版本（默认最高版本）")
@click.option("--json", "as_json", is_flag=True, help="以 JSON 输出")
@click.pass_obj
@_friendly_errors
def info(state: Any, name: str, version: str | None, as_json: bool) -> None:
    """查看已安装包信息"""
    record = state.manager.info(name, version)
    if record is None:
        click.echo(f"未找到包: {name}")
        return
    if as_json:
        click.echo(json.dumps(record.to_dict(), ensure_ascii=False, indent=2))
        return
    click.echo(f"Package: {record.name}")
    click.echo(f"Version: {record.version}")
    if not record.has_metadata:
        click.echo("Metadata: 未知（安装目录中没有元数据文件）")
        return
    click.echo(f"Source: {record.source.url}")
    click.echo(f"Checksum: {record.source.checksum}")
    deps = record.dependencies or {}
    if deps:
        click.echo("Dependencies:")
        for dep, constraint in sorted(deps.items()):
            click.echo(f"  {dep} {constraint}")
    else:
        click.echo("Dependencies: 无")
    click.echo("Build steps:")
    for step in record.build_steps or []:
        click.echo(f"  {step}")


@click.command()
@click.pass_obj
@_friendly_errors
def check(state: Any) -> None:
    """检查失败安装遗留的构建目录和未记录的安装目录"""
    report = state.manager.orphans()
    if report.empty:
        click.echo("存储目录干净。")
        return
    for p in report.scratch_dirs:
        click.echo(f"  遗留构建目录: {p}")
    for p in report.unrecorded_installs:
        click.echo(f"  未记录的安装目录: {p}")
