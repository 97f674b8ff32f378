"""依赖引擎 — 组装解析、构建、安装、检出、清单各组件

用法:
    from modgraph.core.config import Config
    from modgraph.core.pkg import DependencyEngine

    engine = DependencyEngine(Config(workspace_dir="."))
    root = engine.new_root()
    engine.build(root)            # 从源码推导并安装依赖
    engine.manifests.save(root)
"""

from __future__ import annotations

import logging
from pathlib import Path

from modgraph.core.config import Config
from modgraph.core.exceptions import NoSourceError, UnitNotFoundError
from modgraph.core.pkg.graph import GraphBuilder
from modgraph.core.pkg.imports import ImportExtractor, ImportResolver, SourceImportExtractor
from modgraph.core.pkg.installer import Installer
from modgraph.core.pkg.manifest import ManifestStore
from modgraph.core.pkg.models import BuildResult, InstallOutcome, UnitMeta
from modgraph.core.pkg.node import ModuleNode
from modgraph.core.pkg.vcs import VersionController
from modgraph.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class DependencyEngine:
    """依赖引擎，同一实例内的组件共享配置与执行器"""

    def __init__(
        self,
        config: Config,
        extractor: ImportExtractor | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.config = config
        self.extractor = extractor or SourceImportExtractor(config)
        self.resolver = ImportResolver(config, self.extractor)
        self.manifests = ManifestStore(config.manifest_name)
        self.controller = VersionController(
            config, self.manifests, executor=executor, rebuild=self.build,
        )
        self.installer = Installer(self.controller)
        self.builder = GraphBuilder(config, self.resolver, self.installer.try_install)

    def new_root(self) -> ModuleNode:
        """以当前工作区创建根节点"""
        root = ModuleNode()
        root.path = str(self.config.workspace_path)
        root.manifest_file = self.config.manifest_name
        return root

    def meta_for(self, node: ModuleNode) -> UnitMeta | None:
        """获取并缓存节点的元信息；无源文件时返回空导入，找不到时返回 None"""
        if node.meta is not None:
            return node.meta
        if node.is_root:
            name, cwd = ".", Path(node.path or self.config.workspace_path)
        else:
            name, cwd = node.name, self.config.workspace_path
        try:
            meta = self.extractor.extract(name, cwd)
        except NoSourceError as e:
            meta = UnitMeta(dir=e.directory or node.path, import_path=node.name)
        except UnitNotFoundError as e:
            logger.warning("无法加载模块 %s 的元信息: %s", node.name or ".", e)
            return None
        node.meta = meta
        return meta

    def build(self, node: ModuleNode) -> BuildResult:
        """用节点自身的元信息推导并安装其依赖"""
        meta = self.meta_for(node)
        if meta is None:
            return BuildResult(name=node.name)
        return self.builder.build(node, meta)

    def install(self, node: ModuleNode) -> InstallOutcome:
        return self.installer.install(node)

    def install_deps(self, node: ModuleNode) -> list[InstallOutcome]:
        return self.installer.install_deps(node)
