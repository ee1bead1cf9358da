"""CLI - 依赖管理命令"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

import click

from vendlock.core.exceptions import VendlockError


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(update)
    group.add_command(lock)
    group.add_command(list_deps)
    group.add_command(list_sources)


def _reports_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """把 VendlockError 转为带错误码的 ClickException"""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except VendlockError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e

    return wrapper


def _manager(project: str) -> Any:
    from vendlock.core.dep_manager import DepManager
    return DepManager(project_root=project)


def _echo_install(report: Any) -> None:
    for name, path in report.installed.items():
        click.echo(f"  {name} -> {path}")
    for warning in report.warnings:
        click.echo(f"  [WARN] {warning}", err=True)
    click.echo(report.summary())


@click.command()
@click.option("--project", "-p", default=".", help="项目根目录")
@_reports_errors
def install(project: str) -> None:
    """按锁文件（不存在时按清单）解析并安装依赖"""
    _echo_install(_manager(project).install())


@click.command()
@click.option("--project", "-p", default=".", help="项目根目录")
@_reports_errors
def update(project: str) -> None:
    """忽略锁文件，按清单重新解析、锁定并安装"""
    _echo_install(_manager(project).install(update=True))


@click.command()
@click.option("--project", "-p", default=".", help="项目根目录")
@click.option("--update", "refresh", is_flag=True, help="忽略已有锁文件")
@_reports_errors
def lock(project: str, refresh: bool) -> None:
    """只解析并写锁文件，不安装"""
    dm = _manager(project)
    graph = dm.lock(update=refresh)
    for warning in graph.warnings:
        click.echo(f"  [WARN] {warning}", err=True)
    click.echo(f"已锁定 {len(graph)} 个依赖 -> {dm.lockfile_path}")


@click.command(name="list")
@click.option("--project", "-p", default=".", help="项目根目录")
@_reports_errors
def list_deps(project: str) -> None:
    """列出锁文件中的依赖"""
    specs = _manager(project).list_locked()
    if not specs:
        click.echo("锁文件中没有依赖。")
        return
    for s in specs:
        version = s.version_constraint or "unversioned"
        ref = s.tag or s.branch
        ref_info = f" @{ref}" if ref else ""
        click.echo(
            f"  {s.import_path:40s} {version:12s} "
            f"[{s.source_type.value:7s}]{ref_info}  {s.url}"
        )


@click.command(name="sources")
@click.option("--project", "-p", default=".", help="项目根目录")
@_reports_errors
def list_sources(project: str) -> None:
    """列出推断依赖使用的来源规则"""
    for rule in _manager(project).registry.list_rules():
        click.echo(f"  {rule['match']:20s} [{rule['type']:5s}] {rule['url']}")
