"""CLI — 依赖安装命令"""

from __future__ import annotations

import click

from modgraph.core.config import Config
from modgraph.core.exceptions import ModGraphError


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(discover)
    group.add_command(tree)


def _service(cfg: Config):
    from modgraph.services.install_service import InstallService
    return InstallService(cfg)


def _print_report(report) -> None:
    for o in report.outcomes:
        ref = f" @{o.reference[:12]}" if o.reference else ""
        msg = f"  {o.message}" if o.message else ""
        click.echo(f"  [{o.status:12s}] {o.name}{ref}{msg}")
    for f in report.failures:
        click.echo(f"  [{'unresolved':12s}] {f.import_path}  {f.reason}")
    if report.manifest_path:
        click.echo(f"清单: {report.manifest_path}")
    click.echo(f"共 {len(report.outcomes)} 个依赖，失败 {len(report.failed)} 个")


@click.command()
@click.option("--no-save", is_flag=True, help="安装后不写回清单")
@click.pass_obj
def install(cfg: Config, no_save: bool) -> None:
    """按清单安装依赖（无清单时从源码推导）"""
    try:
        report = _service(cfg).install(save=not no_save)
    except ModGraphError as e:
        raise click.ClickException(str(e)) from e
    _print_report(report)
    if not report.success:
        raise SystemExit(1)


@click.command()
@click.option("--no-save", is_flag=True, help="只推导不写回清单")
@click.pass_obj
def discover(cfg: Config, no_save: bool) -> None:
    """忽略已有清单，从源码重新推导依赖图"""
    try:
        report = _service(cfg).discover(save=not no_save)
    except ModGraphError as e:
        raise click.ClickException(str(e)) from e
    _print_report(report)
    if not report.success:
        raise SystemExit(1)


@click.command()
@click.pass_obj
def tree(cfg: Config) -> None:
    """显示清单中的依赖树"""
    try:
        lines = _service(cfg).tree()
    except ModGraphError as e:
        raise click.ClickException(str(e)) from e
    for line in lines:
        click.echo(line)
