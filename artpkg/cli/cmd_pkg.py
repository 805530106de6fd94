"""CLI - 包定位 / 安装 / 查询命令"""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from artpkg.cli import _manager
from artpkg.core.exceptions import ArtPkgError
from artpkg.core.pkg.models import Resolution
from artpkg.core.version import ANY_VERSION, VersionConstraint


def register(group: click.Group) -> None:
    group.add_command(locate)
    group.add_command(install)
    group.add_command(list_versions)
    group.add_command(list_packages)
    group.add_command(info)
    group.add_command(verify)
    group.add_command(clean_tmp)


def _constraint(version: str | None, minimum: bool) -> VersionConstraint:
    if not version:
        return ANY_VERSION
    try:
        if minimum:
            return VersionConstraint.minimum(version)
        return VersionConstraint.parse(version)
    except ArtPkgError as e:
        raise click.BadParameter(str(e), param_hint="--version") from e


def _fail(message: str) -> NoReturn:
    click.echo(message, err=True)
    sys.exit(1)


def _report_failure(res: Resolution) -> NoReturn:
    click.echo(res.describe(), err=True)
    if res.installed:
        click.echo("失败前已安装（保留在缓存中）:", err=True)
        for pkg in res.installed:
            click.echo(f"  {pkg}", err=True)
    sys.exit(1)


@click.command()
@click.argument("reference")
@click.option("--version", "version", default=None, help="版本约束，如 1.2.0 / >=1.2.0")
@click.option("--min", "minimum", is_flag=True, help="把 --version 视为最低版本")
@click.option("--latest", is_flag=True, help="跳过本地缓存，总是查询注册中心")
def locate(reference: str, version: str | None, minimum: bool, latest: bool) -> None:
    """定位包的入口文件（本地文件 / 目录 / 代码仓 / 缓存 / 注册中心）"""
    res = _manager().locate(reference, _constraint(version, minimum), want_latest=latest)
    if not res:
        _report_failure(res)
    click.echo(str(res.path))


@click.command()
@click.argument("name")
@click.option("--version", "version", default=None, help="版本约束，如 1.2.0 / >=1.2.0")
@click.option("--min", "minimum", is_flag=True, help="把 --version 视为最低版本")
def install(name: str, version: str | None, minimum: bool) -> None:
    """从注册中心安装包及其依赖"""
    constraint = _constraint(version, minimum)
    pm = _manager()
    if not pm.install(name, constraint):
        _fail(f"安装失败: {name} ({constraint})，详见日志")
    exists, loc = pm.package_exists_locally(name, constraint)
    if exists:
        click.echo(f"就绪: {name} {loc.version} -> {loc.path}")


@click.command(name="versions")
@click.argument("name")
def list_versions(name: str) -> None:
    """列出包在本地缓存中的所有版本（降序）"""
    try:
        versions = _manager().list_local_versions(name)
    except ArtPkgError as e:
        _fail(str(e))
    if not versions:
        click.echo(f"本地没有已安装版本: {name}")
        return
    for loc in versions:
        click.echo(f"  {str(loc.version):16s} {loc.path}")


@click.command(name="list")
def list_packages() -> None:
    """列出本地缓存中的所有包"""
    packages = _manager().list_packages()
    if not packages:
        click.echo("缓存中没有已安装的包。")
        return
    for name, versions in packages.items():
        click.echo(f"  {name:20s} {', '.join(str(v) for v in versions)}")


@click.command()
@click.argument("name")
@click.option("--version", "version", default=None, help="版本约束（默认最高已安装版本）")
def info(name: str, version: str | None) -> None:
    """显示本地已安装包的描述文档"""
    try:
        spec = _manager().read_local_spec(name, _constraint(version, False))
    except ArtPkgError as e:
        _fail(f"{e.code} - {e}")
    if spec is None:
        _fail(f"本地不存在: {name} ({_constraint(version, False)})")
    click.echo(f"版本: {spec.version}")
    if spec.url:
        click.echo(f"地址: {spec.url}")
    if spec.entry:
        click.echo(f"入口: {spec.entry}")
    if spec.depends:
        click.echo("依赖:")
        for dep in spec.depends:
            click.echo(f"  {dep.name} ({dep.constraint})")


@click.command()
@click.argument("folder", type=click.Path(exists=True, file_okay=False))
def verify(folder: str) -> None:
    """推导目录的入口文件并校验 info 中声明的依赖"""
    try:
        path = _manager().derive_entry_point(folder)
    except ArtPkgError as e:
        _fail(f"{e.code} - {e}")
    click.echo(str(path))


@click.command(name="clean-tmp")
def clean_tmp() -> None:
    """清理失败操作遗留的临时文件（保留代码仓检出）"""
    removed = _manager().clean_scratch()
    click.echo(f"已清理 {removed} 项")
