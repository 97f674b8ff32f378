"""版本约束匹配

把 "~1.0.0"、"^1.2"、"1.*"、"v2" 之类的约束与仓库标签匹配，
选出满足约束的最高标签；无法解析为约束的字符串按具体引用原样使用。
"""

from __future__ import annotations

import logging

from semantic_version import SimpleSpec, Version

logger = logging.getLogger(__name__)


def parse_constraint(constraint: str) -> SimpleSpec | None:
    """解析版本约束，不是合法约束时返回 None"""
    text = constraint.strip()
    if not text:
        return None
    # "v2" / "~v1.0" 这类带 v 前缀的写法
    text = text.replace("v", "") if _looks_prefixed(text) else text
    try:
        return SimpleSpec(text)
    except ValueError:
        return None


def _looks_prefixed(text: str) -> bool:
    body = text.lstrip("~^=<>!")
    return body.startswith("v") and body[1:2].isdigit()


def tag_version(tag: str) -> Version | None:
    """把标签转成语义化版本，v 前缀和缺省段均可"""
    text = tag[1:] if tag[:1] in ("v", "V") else tag
    if not text[:1].isdigit():
        return None
    try:
        return Version.coerce(text)
    except ValueError:
        return None


def select_tag(constraint: str, tags: list[str]) -> str | None:
    """从 tags 中选出满足 constraint 的最高版本标签，没有则返回 None"""
    spec = parse_constraint(constraint)
    if spec is None:
        return None
    candidates: dict[Version, str] = {}
    for tag in tags:
        ver = tag_version(tag)
        if ver is None:
            continue
        # 同一版本多个写法（v1.0.0 / 1.0.0）时保留先出现的
        candidates.setdefault(ver, tag)
    best = spec.select(candidates.keys())
    if best is None:
        logger.debug("没有满足 %s 的标签 (共 %d 个)", constraint, len(tags))
        return None
    return candidates[best]


def resolve_target(constraint: str, tags: list[str]) -> str:
    """约束能匹配到标签时返回该标签，否则原样返回（视为分支/提交等具体引用）"""
    return select_tag(constraint, tags) or constraint
