"""依赖安装编排

单个节点: 解析后端 → 本地不存在则拉取 → 检出到目标版本。
子节点: 并发安装全部直接依赖，单个失败只记录，不影响兄弟节点。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from modgraph.core.exceptions import FetchError, ModGraphError
from modgraph.core.pkg.models import (
    INSTALL_ERROR,
    INSTALL_FETCH_FAILED,
    INSTALL_OK,
    INSTALL_SKIPPED,
    InstallOutcome,
    flatten_outcomes,
)
from modgraph.core.pkg.tasks import run_tasks

if TYPE_CHECKING:
    from modgraph.core.pkg.node import ModuleNode
    from modgraph.core.pkg.vcs import VersionController

logger = logging.getLogger(__name__)


class Installer:
    """安装编排器"""

    def __init__(self, controller: VersionController) -> None:
        self.controller = controller

    def install(self, node: ModuleNode) -> InstallOutcome:
        """安装单个依赖；根模块（当前工作区）不做任何改动

        无法解析后端时抛 BackendResolutionError；检出失败时抛 CheckoutError。
        """
        if node.is_root:
            return InstallOutcome(name=node.name, status=INSTALL_SKIPPED, message="root")

        repo = self.controller.vcs(node)
        with node.lock:
            node.installed = repo.check_local()
            node.path = str(repo.local_path)
            installed = node.installed

        fetch_error = ""
        if not installed:
            logger.info(
                "安装 %s -> %s", node.name,
                node.relative_repo_path(self.controller.config.install_path),
            )
            try:
                repo.get()
            except FetchError as e:
                fetch_error = str(e)
                logger.error("安装失败 %s -> %s: %s", node.name, repo.local_path, e)

        checkout = self.controller.checkout(node)
        return InstallOutcome(
            name=node.name,
            status=INSTALL_FETCH_FAILED if fetch_error else INSTALL_OK,
            reference=node.reference,
            message=fetch_error,
            checkout=checkout,
        )

    def try_install(self, node: ModuleNode) -> InstallOutcome:
        """install 的容错版本，失败转为 error 结果"""
        try:
            return self.install(node)
        except ModGraphError as e:
            logger.error("依赖 %s 安装失败: %s", node.name, e)
            return InstallOutcome(name=node.name, status=INSTALL_ERROR, message=str(e))

    def install_deps(self, node: ModuleNode) -> list[InstallOutcome]:
        """并发安装全部直接依赖，按依赖顺序返回每个结果"""
        deps = list(node.dependencies)
        outcomes = run_tasks(self.try_install, deps)
        flat = flatten_outcomes(outcomes)
        failed = [o.name for o in flat if not o.success]
        if failed:
            logger.warning(
                "安装汇总: %d 成功, %d 失败 (%s)",
                len(flat) - len(failed), len(failed), ", ".join(failed),
            )
        return outcomes
