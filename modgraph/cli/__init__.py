"""modgraph 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
全局选项在 main 中合并为一个只读 Config，经 ctx.obj 传给子命令。
"""

from __future__ import annotations

import os

import click

from modgraph import __version__
from modgraph.core.config import Config
from modgraph.utils.logger import setup_logging


def _load_config(
    config_file: str | None,
    workspace: str | None,
    install_dir: str | None,
    shared_root: str | None,
    vendoring: bool | None,
) -> Config:
    """配置文件 → 环境变量 → 命令行选项，后者覆盖前者"""
    base = Config.from_file(config_file) if config_file else Config()
    cfg = Config.from_env(base)
    return cfg.with_overrides(
        workspace_dir=workspace,
        install_dir=install_dir,
        shared_root=shared_root,
        vendoring=vendoring,
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_file", default=None, help="配置文件路径")
@click.option("--workspace", "-w", default=None, help="工作区根目录（默认当前目录）")
@click.option("--install-dir", default=None, help="依赖安装根目录（默认 <workspace>/vendor）")
@click.option("--shared-root", default=None, help="共享工作区根目录")
@click.option("--vendor/--no-vendor", "vendoring", default=None, help="是否启用 vendor 递归解析")
@click.pass_context
def main(
    ctx: click.Context,
    config_file: str | None,
    workspace: str | None,
    install_dir: str | None,
    shared_root: str | None,
    vendoring: bool | None,
) -> None:
    """modgraph - 模块依赖图解析与安装"""
    setup_logging(
        level=os.getenv("MODGRAPH_LOG_LEVEL", "INFO"),
        json_output=os.getenv("MODGRAPH_LOG_JSON", "") == "1",
    )
    ctx.obj = _load_config(config_file, workspace, install_dir, shared_root, vendoring)


# 注册各领域子命令
from modgraph.cli.cmd_deps import register as _reg_deps  # noqa: E402

_reg_deps(main)
