# core/slug.py

from __future__ import annotations

import re
from enum import Enum

_WHITESPACE = re.compile(r"\s+")
_NOT_SLUG_CHARS = re.compile(r"[^\w\-]+", re.ASCII)
_REPEATED_HYPHENS = re.compile(r"-{2,}")


class SlugPolicy(Enum):
    """名字变化时 slug 是否重新生成"""

    ALWAYS = "always"            # 创建模式：slug 始终跟着名字走
    WHILE_EMPTY = "while_empty"  # 编辑模式：只有 slug 为空时才生成，避免覆盖已有 slug


def slugify(name: str) -> str:
    """
    名字 → URL 安全的 slug。

    例: "Manette DualSense Custom FIFA 25" → "manette-dualsense-custom-fifa-25"
    """
    if not name:
        return ""
    slug = name.lower()
    slug = _WHITESPACE.sub("-", slug)
    slug = _NOT_SLUG_CHARS.sub("", slug)
    slug = _REPEATED_HYPHENS.sub("-", slug)
    return slug.strip("-")


def next_slug(current_slug: str, new_name: str, policy: SlugPolicy) -> str:
    """按策略决定名字改了之后的 slug"""
    if policy is SlugPolicy.ALWAYS:
        return slugify(new_name.strip())
    if not current_slug.strip():
        return slugify(new_name.strip())
    return current_slug
