"""清单读写

每个模块目录下一个固定文件名的 YAML 清单，记录模块名、版本约束、
已解析引用、远程地址以及（按条件）依赖子树。
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from modgraph.core.config import DEFAULT_MANIFEST_NAME
from modgraph.core.exceptions import ManifestError, ManifestNotFoundError, ManifestWriteError
from modgraph.core.pkg.node import ModuleNode
from modgraph.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


class ManifestStore:
    """清单存取 — 反序列化后修正父引用，序列化时避免嵌套清单重复存储"""

    def __init__(self, manifest_name: str = DEFAULT_MANIFEST_NAME) -> None:
        self.manifest_name = manifest_name

    def manifest_path(self, node: ModuleNode) -> Path:
        if not node.manifest_file:
            node.manifest_file = self.manifest_name
        return Path(node.path or ".") / node.manifest_file

    def load(self, node: ModuleNode) -> None:
        """从节点目录加载清单

        文件不存在时抛 ManifestNotFoundError，调用方应视为正常情况。
        """
        node.has_manifest = False
        path = self.manifest_path(node)
        if not path.is_file():
            raise ManifestNotFoundError(f"清单不存在: {path}")
        try:
            doc = load_yaml(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ManifestError(f"清单读取失败 {path}: {e}") from e

        with node.lock:
            node.apply_manifest(doc)
        node.has_manifest = True
        node.fix_parents()
        logger.debug("已加载清单 %s (%d 个直接依赖)", path, len(node.dependencies))

    def save(self, node: ModuleNode) -> Path:
        """序列化节点并写入其目录下的清单，失败抛 ManifestWriteError"""
        path = self.manifest_path(node)
        try:
            save_yaml(path, node.to_manifest())
        except (OSError, yaml.YAMLError) as e:
            raise ManifestWriteError(f"清单写入失败 {path}: {e}") from e
        logger.info("已保存清单: %s", path)
        return path
