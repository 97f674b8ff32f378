"""模块节点 — 依赖图的基本单元

所有权自根向下：父节点通过 dependencies 持有子节点；
子节点对父节点只保留弱引用，仅用于向上查找，不参与生命周期管理。

加锁约定:
  - 每个节点一把 threading.Lock，保护本节点的标量字段和 dependencies 列表
  - 整张图共享一把 RLock，保证 "祖先链查找 + 不存在则挂载" 的原子性，
    并发发现同一依赖时只会产生一个节点
"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from modgraph.core.pkg.models import UnitMeta
    from modgraph.core.pkg.vcs import Repo

# 清单字段名（与文件格式一一对应）
KEY_NAME = "pkg"
KEY_VERSION = "ver"
KEY_REFERENCE = "ref"
KEY_URL = "url"
KEY_DEPS = "deps"


class ModuleNode:
    """依赖图中的一个模块（根模块或依赖）"""

    def __init__(
        self,
        name: str = "",
        version: str = "",
        reference: str = "",
        url: str = "",
    ) -> None:
        self.name = name
        self.version = version          # 版本约束，如 "~1.0.0"、"1.*"
        self.reference = reference      # 检出后解析出的具体版本
        self.url = url                  # 显式远程地址
        self.dependencies: list[ModuleNode] = []

        self.lock = threading.Lock()
        self._graph_lock = threading.RLock()
        self._parent: weakref.ref[ModuleNode] | None = None

        # 运行期缓存，不写入清单
        self.path = ""
        self.meta: UnitMeta | None = None
        self.repo: Repo | None = None
        self.installed = False
        self.has_manifest = False
        self.manifest_file = ""

    def __repr__(self) -> str:
        return f"ModuleNode({self.name!r}, version={self.version!r}, ref={self.reference!r})"

    # ------------------------------------------------------------------
    # 父子关系
    # ------------------------------------------------------------------

    @property
    def parent(self) -> ModuleNode | None:
        if self._parent is None:
            return None
        return self._parent()

    def set_parent(self, parent: ModuleNode) -> None:
        """挂到 parent 下：记录弱引用并加入所在图的共享锁"""
        self._parent = weakref.ref(parent)
        self._graph_lock = parent._graph_lock

    @property
    def is_root(self) -> bool:
        return self._parent is None

    def root(self) -> ModuleNode:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def ancestors(self) -> Iterator[ModuleNode]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def has_ancestor_named(self, name: str) -> bool:
        return any(a.name == name for a in self.ancestors())

    def fix_parents(self) -> None:
        """递归修正子树的父引用（反序列化后调用）"""
        for dep in self.dependencies:
            with dep.lock:
                dep.set_parent(self)
            dep.fix_parents()

    # ------------------------------------------------------------------
    # 查找与挂载
    # ------------------------------------------------------------------

    def find(self, name: str) -> ModuleNode | None:
        """先查本节点的直接依赖，再逐级查祖先的直接依赖，返回最近的同名节点"""
        with self._graph_lock:
            return self._find_unlocked(name)

    def _find_unlocked(self, name: str) -> ModuleNode | None:
        node: ModuleNode | None = self
        while node is not None:
            for dep in node.dependencies:
                if dep.name == name:
                    return dep
            node = node.parent
        return None

    def attach_if_absent(self, name: str) -> tuple[ModuleNode, bool]:
        """祖先链中不存在 name 时创建子节点并挂载，返回 (节点, 是否新建)"""
        with self._graph_lock:
            existing = self._find_unlocked(name)
            if existing is not None:
                return existing, False
            child = ModuleNode(name)
            child.set_parent(self)
            with self.lock:
                self.dependencies.append(child)
            return child, True

    def iter_tree(self, depth: int = 0) -> Iterator[tuple[int, ModuleNode]]:
        """深度优先遍历子树，产出 (深度, 节点)"""
        yield depth, self
        for dep in list(self.dependencies):
            yield from dep.iter_tree(depth + 1)

    # ------------------------------------------------------------------
    # 路径
    # ------------------------------------------------------------------

    def repo_path(self, install_root: Path) -> Path:
        """模块在安装根目录下的本地检出目录"""
        return install_root / self.name

    def relative_repo_path(self, install_root: Path) -> str:
        """相对安装根目录的检出路径"""
        return str(self.repo_path(install_root).relative_to(install_root))

    def in_shared_workspace(self, shared_src: Path | None) -> bool:
        """根模块是否位于共享工作区的 src 目录下"""
        if shared_src is None:
            return False
        root = self.root()
        if not root.path:
            return False
        try:
            Path(root.path).resolve().relative_to(shared_src)
        except ValueError:
            return False
        return True

    # ------------------------------------------------------------------
    # 清单序列化
    # ------------------------------------------------------------------

    def to_manifest(self, nested: bool = False) -> dict[str, Any]:
        """序列化为清单文档

        作为祖先清单中的嵌套项时，拥有独立清单的非根节点不输出 deps，
        其传递依赖由它自己的清单负责。
        """
        with self.lock:
            doc: dict[str, Any] = {KEY_NAME: self.name}
            if self.version:
                doc[KEY_VERSION] = self.version
            if self.reference:
                doc[KEY_REFERENCE] = self.reference
            if self.url:
                doc[KEY_URL] = self.url
            deps = list(self.dependencies)
            omit_deps = nested and self.has_manifest and not self.is_root
        if deps and not omit_deps:
            doc[KEY_DEPS] = [d.to_manifest(nested=True) for d in deps]
        return doc

    def apply_manifest(self, doc: dict[str, Any]) -> None:
        """把清单文档写入本节点，只覆盖文档中出现的字段（调用方负责加锁）"""
        if doc.get(KEY_NAME):
            self.name = str(doc[KEY_NAME])
        if KEY_VERSION in doc:
            self.version = _as_str(doc[KEY_VERSION])
        if KEY_REFERENCE in doc:
            self.reference = _as_str(doc[KEY_REFERENCE])
        if KEY_URL in doc:
            self.url = _as_str(doc[KEY_URL])
        if KEY_DEPS in doc:
            self.dependencies = [
                ModuleNode.from_manifest(d)
                for d in (doc[KEY_DEPS] or [])
                if isinstance(d, dict)
            ]

    @classmethod
    def from_manifest(cls, doc: dict[str, Any]) -> ModuleNode:
        node = cls()
        node.apply_manifest(doc)
        return node


def _as_str(value: Any) -> str:
    # YAML 会把 1.0 之类的版本号解析成数字
    if value is None:
        return ""
    return str(value)
