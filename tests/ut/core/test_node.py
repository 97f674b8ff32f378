"""ModuleNode 单元测试 — 祖先链查找、挂载、清单序列化"""

from __future__ import annotations

import threading
from pathlib import Path

from modgraph.core.pkg.node import ModuleNode


def _chain() -> tuple[ModuleNode, ModuleNode, ModuleNode]:
    """root → a → b，root 另有依赖 x，a 另有依赖 y"""
    root = ModuleNode("github.com/me/app")
    a, _ = root.attach_if_absent("github.com/x/a")
    root.attach_if_absent("github.com/x/x")
    b, _ = a.attach_if_absent("github.com/x/b")
    a.attach_if_absent("github.com/x/y")
    return root, a, b


class TestParentLinks:
    def test_root_has_no_parent(self) -> None:
        root, a, b = _chain()
        assert root.is_root
        assert not a.is_root
        assert b.parent is a
        assert b.root() is root

    def test_ancestors(self) -> None:
        root, a, b = _chain()
        assert list(b.ancestors()) == [a, root]
        assert b.has_ancestor_named("github.com/me/app")
        assert not b.has_ancestor_named("github.com/x/y")

    def test_parent_is_weak_reference(self) -> None:
        """父引用不持有所有权"""
        root = ModuleNode("root")
        child, _ = root.attach_if_absent("github.com/x/a")
        del root
        assert child.parent is None


class TestFind:
    def test_find_direct_dependency(self) -> None:
        root, a, _ = _chain()
        assert root.find("github.com/x/a") is a

    def test_find_walks_up_ancestors(self) -> None:
        """先查自身直接依赖，再查各级祖先的直接依赖"""
        root, a, b = _chain()
        assert b.find("github.com/x/y") is a.dependencies[1]
        assert b.find("github.com/x/x") is root.dependencies[1]

    def test_find_nearest_match_wins(self) -> None:
        root, a, b = _chain()
        near, _ = b.attach_if_absent("github.com/x/z")
        far = ModuleNode("github.com/x/z")
        root.dependencies.append(far)
        assert b.find("github.com/x/z") is near

    def test_find_does_not_look_into_siblings_subtrees(self) -> None:
        root, a, _ = _chain()
        sibling = root.dependencies[1]
        assert sibling.find("github.com/x/b") is None

    def test_find_missing(self) -> None:
        _, _, b = _chain()
        assert b.find("github.com/none/none") is None


class TestAttach:
    def test_attach_reuses_existing(self) -> None:
        root, a, b = _chain()
        node, created = b.attach_if_absent("github.com/x/a")
        assert node is a
        assert created is False
        assert b.dependencies == []

    def test_attach_preserves_discovery_order(self) -> None:
        root = ModuleNode("app")
        for name in ("c", "a", "b"):
            root.attach_if_absent(f"github.com/x/{name}")
        assert [d.name for d in root.dependencies] == [
            "github.com/x/c", "github.com/x/a", "github.com/x/b",
        ]

    def test_concurrent_attach_creates_single_node(self) -> None:
        """同一父节点上并发挂载同名依赖只产生一个节点"""
        root = ModuleNode("app")
        barrier = threading.Barrier(8)
        results: list[bool] = []

        def worker(parent: ModuleNode) -> None:
            barrier.wait()
            _, created = parent.attach_if_absent("github.com/x/c")
            results.append(created)

        threads = [threading.Thread(target=worker, args=(root,)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        count = sum(1 for _, n in root.iter_tree() if n.name == "github.com/x/c")
        assert count == 1

    def test_lookup_does_not_cross_sibling_subtrees(self) -> None:
        """查找只走祖先链，兄弟子树下的同名节点不可见"""
        root = ModuleNode("app")
        a, _ = root.attach_if_absent("github.com/x/a")
        b, _ = root.attach_if_absent("github.com/x/b")
        under_a, _ = a.attach_if_absent("github.com/x/c")

        under_b, created = b.attach_if_absent("github.com/x/c")

        assert created is True
        assert under_b is not under_a
        assert under_b.parent is b


class TestManifestSerialization:
    def test_to_manifest_omits_empty_fields(self) -> None:
        node = ModuleNode("github.com/x/a")
        assert node.to_manifest() == {"pkg": "github.com/x/a"}

    def test_to_manifest_key_order(self) -> None:
        root = ModuleNode("app", version="~1.0", reference="abc", url="https://e.com/a.git")
        root.attach_if_absent("github.com/x/a")
        assert list(root.to_manifest()) == ["pkg", "ver", "ref", "url", "deps"]

    def test_nested_node_with_own_manifest_omits_deps(self) -> None:
        root = ModuleNode("app")
        a, _ = root.attach_if_absent("github.com/x/a")
        a.attach_if_absent("github.com/x/b")
        a.has_manifest = True

        doc = root.to_manifest()
        assert doc["deps"] == [{"pkg": "github.com/x/a"}]

    def test_nested_node_without_manifest_keeps_deps(self) -> None:
        root = ModuleNode("app")
        a, _ = root.attach_if_absent("github.com/x/a")
        a.attach_if_absent("github.com/x/b")

        doc = root.to_manifest()
        assert doc["deps"][0]["deps"] == [{"pkg": "github.com/x/b"}]

    def test_root_with_manifest_keeps_deps(self) -> None:
        root = ModuleNode("app")
        root.has_manifest = True
        root.attach_if_absent("github.com/x/a")
        assert root.to_manifest()["deps"] == [{"pkg": "github.com/x/a"}]

    def test_apply_manifest_only_overwrites_present_fields(self) -> None:
        node = ModuleNode("github.com/x/a", version="~1.0", reference="abc")
        node.apply_manifest({"ver": 1.2})
        assert node.version == "1.2"
        assert node.reference == "abc"
        assert node.name == "github.com/x/a"

    def test_from_manifest_then_fix_parents(self) -> None:
        root = ModuleNode.from_manifest({
            "pkg": "app",
            "deps": [{"pkg": "github.com/x/a", "deps": [{"pkg": "github.com/x/b"}]}],
        })
        root.fix_parents()
        b = root.dependencies[0].dependencies[0]
        assert b.parent is root.dependencies[0]
        assert b.root() is root
        assert b.find("github.com/x/a") is root.dependencies[0]


class TestPaths:
    def test_repo_path_uses_install_root(self, tmp_path: Path) -> None:
        node = ModuleNode("github.com/x/a")
        assert node.repo_path(tmp_path) == tmp_path / "github.com/x/a"
        assert node.relative_repo_path(tmp_path) == "github.com/x/a"

    def test_in_shared_workspace(self, tmp_path: Path) -> None:
        shared_src = tmp_path / "shared" / "src"
        root = ModuleNode()
        root.path = str(shared_src / "github.com/me/app")
        child, _ = root.attach_if_absent("github.com/x/a")
        assert child.in_shared_workspace(shared_src.resolve())
        assert not child.in_shared_workspace(None)

        root.path = str(tmp_path / "elsewhere")
        assert not child.in_shared_workspace(shared_src.resolve())
