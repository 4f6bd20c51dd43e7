"""slug 生成与校验"""
import re
from typing import Iterable

SLUG_MAX_LENGTH = 100

# 与链接语法保持一致：只处理 ASCII 单词字符
_NON_SLUG_CHARS = re.compile(r"[^\w\s-]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")
_MULTI_HYPHEN = re.compile(r"-+")
_VALID_SLUG = re.compile(r"^[a-z0-9-]+$")


def generate_slug(text: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """
    把任意文本转换成 URL 友好的 slug

    只做确定性变换，不保证唯一；唯一性由调用方检查（冲突时报 Conflict），
    或者显式调用 make_slug_unique。
    """
    slug = (text or "").lower().strip()
    slug = _NON_SLUG_CHARS.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    slug = _MULTI_HYPHEN.sub("-", slug)
    return slug[:max_length]


def is_valid_slug(slug: str, max_length: int = SLUG_MAX_LENGTH) -> bool:
    return bool(slug) and bool(_VALID_SLUG.match(slug)) and len(slug) <= max_length


def make_slug_unique(base_slug: str, existing_slugs: Iterable[str]) -> str:
    """在 base_slug 后追加 -2、-3…直到不与 existing_slugs 冲突"""
    existing = set(existing_slugs)
    if base_slug not in existing:
        return base_slug

    counter = 2
    while f"{base_slug}-{counter}" in existing:
        counter += 1
    return f"{base_slug}-{counter}"
