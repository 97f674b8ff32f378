"""依赖图构建

根据单元元信息展开导入，为新发现的模块创建子节点并并发安装。
同名模块只要在祖先链上已存在就直接复用（先发现者优先），
版本约束不一致的菱形依赖只记录日志，不做调和。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from modgraph.core.pkg.imports import is_subpackage, repo_name
from modgraph.core.pkg.models import BuildResult
from modgraph.core.pkg.tasks import run_tasks

if TYPE_CHECKING:
    from modgraph.core.config import Config
    from modgraph.core.pkg.imports import ImportResolver
    from modgraph.core.pkg.models import InstallOutcome, UnitMeta
    from modgraph.core.pkg.node import ModuleNode

logger = logging.getLogger(__name__)

InstallFn = Callable[["ModuleNode"], "InstallOutcome"]


class GraphBuilder:
    """依赖图构建器"""

    def __init__(self, config: Config, resolver: ImportResolver, install: InstallFn) -> None:
        self.config = config
        self.resolver = resolver
        self.install = install

    def build(self, node: ModuleNode, meta: UnitMeta) -> BuildResult:
        """为 node 挂载新发现的依赖并等待它们全部安装完成"""
        with node.lock:
            node.path = meta.dir
        if node.in_shared_workspace(self.config.shared_src) and meta.import_path not in ("", "."):
            with node.lock:
                node.name = repo_name(meta.import_path)

        resolution = self.resolver.resolve(node.name, meta.imports)
        result = BuildResult(name=node.name, failures=resolution.failures)

        spawned: list[ModuleNode] = []
        for imp in resolution.names:
            name = repo_name(imp)
            if is_subpackage(name, node.name) or node.has_ancestor_named(name):
                continue
            dep, created = node.attach_if_absent(name)
            if created:
                spawned.append(dep)
                result.added.append(name)
            elif dep.version:
                # 菱形依赖: 已有节点的约束生效，新路径上的约束不参与调和
                logger.debug("%s 已在依赖图中 (ver=%s)，复用", name, dep.version)

        if spawned:
            logger.info("%s: 发现 %d 个新依赖", node.name or ".", len(spawned))
        result.outcomes = run_tasks(self.install, spawned)
        return result
