"""版本约束匹配单元测试"""

from __future__ import annotations

import pytest

from modgraph.core.pkg.version import parse_constraint, resolve_target, select_tag, tag_version

TAGS = ["v0.9.0", "v1.0.0", "v1.0.5", "v1.1.0", "v1.2.3", "v2.0.0", "nightly"]


class TestSelectTag:
    @pytest.mark.parametrize("constraint,expected", [
        ("~1.0.0", "v1.0.5"),
        ("^1.0.0", "v1.2.3"),
        (">=1.1.0,<2.0.0", "v1.2.3"),
        ("1.0.0", "v1.0.0"),
        ("v1.1.0", "v1.1.0"),
        ("~v1.0.0", "v1.0.5"),
    ])
    def test_highest_matching_tag(self, constraint: str, expected: str) -> None:
        assert select_tag(constraint, TAGS) == expected

    def test_no_match(self) -> None:
        assert select_tag("~3.0.0", TAGS) is None

    def test_not_a_constraint(self) -> None:
        assert select_tag("master", TAGS) is None
        assert parse_constraint("master") is None
        assert parse_constraint("") is None

    def test_tags_without_version_are_ignored(self) -> None:
        assert tag_version("nightly") is None
        assert tag_version("v1.2") is not None


class TestResolveTarget:
    def test_constraint_resolves_to_tag(self) -> None:
        assert resolve_target("~1.0.0", TAGS) == "v1.0.5"

    def test_literal_reference_kept(self) -> None:
        assert resolve_target("feature/x", TAGS) == "feature/x"
        assert resolve_target("3f2a9c0e", TAGS) == "3f2a9c0e"
