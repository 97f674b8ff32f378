"""安装服务 — 面向 CLI 的顶层流程

流程:
  install:  加载根清单（没有则从源码推导）→ 安装全部依赖 → 保存清单
  discover: 忽略已有清单，从源码重新推导依赖图 → 保存清单
  tree:     读取根清单，返回依赖树
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from modgraph.core.config import Config
from modgraph.core.exceptions import ManifestNotFoundError
from modgraph.core.pkg.engine import DependencyEngine
from modgraph.core.pkg.imports import ImportExtractor, repo_name
from modgraph.core.pkg.models import (
    BuildResult,
    ImportFailure,
    InstallOutcome,
    flatten_failures,
    flatten_outcomes,
)
from modgraph.core.pkg.node import ModuleNode
from modgraph.core.pkg.tasks import run_tasks
from modgraph.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


@dataclass
class InstallReport:
    """一次安装/推导的汇总结果"""

    root: ModuleNode
    outcomes: list[InstallOutcome] = field(default_factory=list)
    failures: list[ImportFailure] = field(default_factory=list)
    manifest_path: Path | None = None
    from_manifest: bool = False

    @property
    def success(self) -> bool:
        return all(o.success for o in self.outcomes)

    @property
    def failed(self) -> list[InstallOutcome]:
        return [o for o in self.outcomes if not o.success]


class InstallService:
    """安装服务"""

    def __init__(
        self,
        config: Config,
        extractor: ImportExtractor | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.config = config
        self.engine = DependencyEngine(config, extractor=extractor, executor=executor)

    def load_root(self) -> ModuleNode:
        """创建根节点并尝试加载其清单，清单缺失不算错误"""
        root = self.engine.new_root()
        try:
            self.engine.manifests.load(root)
        except ManifestNotFoundError:
            logger.info("未找到清单 %s，将从源码推导", self.engine.manifests.manifest_path(root))
        return root

    def install(self, save: bool = True) -> InstallReport:
        root = self.load_root()
        if root.has_manifest:
            outcomes = self.install_tree(root)
            report = _report(root, outcomes, flatten_failures(outcomes))
            report.from_manifest = True
        else:
            report = _build_report(root, self.engine.build(root))
        if save:
            report.manifest_path = self.engine.manifests.save(root)
        return report

    def discover(self, save: bool = True) -> InstallReport:
        root = self.engine.new_root()
        report = _build_report(root, self.engine.build(root))
        if save:
            report.manifest_path = self.engine.manifests.save(root)
        return report

    def install_tree(self, node: ModuleNode) -> list[InstallOutcome]:
        """安装 node 的直接依赖，再逐层安装清单中记录的下级依赖"""
        outcomes = self.engine.install_deps(node)
        installed = {o.name for o in outcomes if o.success}
        nested = [d for d in list(node.dependencies) if d.name in installed and d.dependencies]
        for sub in run_tasks(self.install_tree, nested):
            outcomes.extend(sub)
        return outcomes

    def tree(self) -> list[str]:
        """以缩进文本返回清单中的依赖树"""
        root = self.load_root()
        lines: list[str] = []
        for depth, node in root.iter_tree():
            label = node.name or "."
            if node.version:
                label += f" {node.version}"
            if node.reference:
                label += f" @{node.reference[:12]}"
            lines.append("  " * depth + label)
        return lines


def _build_report(root: ModuleNode, result: BuildResult) -> InstallReport:
    return _report(root, result.outcomes, result.all_failures())


def _report(
    root: ModuleNode,
    outcomes: list[InstallOutcome],
    failures: list[ImportFailure],
) -> InstallReport:
    """汇总结果，展开重新推导中的安装结果

    导入失败只保留最终仍未解决的：所属模块后来安装成功的，
    或同一导入路径重复记录的，不再报告。
    """
    flat = flatten_outcomes(outcomes)
    installed = {o.name for o in flat if o.success}
    unresolved: list[ImportFailure] = []
    seen: set[str] = set()
    for f in failures:
        if f.import_path in seen or repo_name(f.import_path) in installed:
            continue
        seen.add(f.import_path)
        unresolved.append(f)
    return InstallReport(root=root, outcomes=flat, failures=unresolved)
