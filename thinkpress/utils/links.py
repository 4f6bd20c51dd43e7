"""站内链接提取

纯函数，不访问数据库，也不知道哪些 slug 真实存在。支持两种写法：
- wiki 风格：[[slug]] 或 [[slug|显示文本]]
- markdown：[显示文本](/posts/slug)
"""
import re
from dataclasses import dataclass
from typing import Optional

CONTEXT_RADIUS = 50

_WIKI_PATTERN = re.compile(r"\[\[([a-z0-9-]+)(?:\|([^\]]+))?\]\]")
_MARKDOWN_PATTERN = re.compile(r"\[([^\]]+)\]\(/posts/([a-z0-9-]+)\)")


@dataclass(frozen=True)
class InternalLink:
    slug: str
    text: Optional[str] = None
    context: str = ""


def _extract_context(content: str, start: int, end: int, radius: int = CONTEXT_RADIUS) -> str:
    ctx_start = max(0, start - radius)
    ctx_end = min(len(content), end + radius)

    context = content[ctx_start:ctx_end].replace("\n", " ")
    context = re.sub(r"\s+", " ", context).strip()

    if ctx_start > 0:
        context = "..." + context
    if ctx_end < len(content):
        context = context + "..."
    return context


def extract_internal_links(content: str) -> list[InternalLink]:
    """
    提取正文中的站内链接

    两种语法分别扫描（先 wiki 后 markdown），按 slug 去重，保留第一次出现的记录。
    """
    content = content or ""
    links: list[InternalLink] = []
    seen: set[str] = set()

    for match in _WIKI_PATTERN.finditer(content):
        slug = match.group(1)
        if slug in seen:
            continue
        seen.add(slug)
        links.append(InternalLink(
            slug=slug,
            text=match.group(2),
            context=_extract_context(content, match.start(), match.end()),
        ))

    for match in _MARKDOWN_PATTERN.finditer(content):
        slug = match.group(2)
        if slug in seen:
            continue
        seen.add(slug)
        links.append(InternalLink(
            slug=slug,
            text=match.group(1),
            context=_extract_context(content, match.start(), match.end()),
        ))

    return links


def convert_wiki_to_markdown(content: str, base_url: str = "/posts") -> str:
    """把 [[slug|text]] 转成普通 markdown 链接"""
    return _WIKI_PATTERN.sub(
        lambda m: f"[{m.group(2) or m.group(1)}]({base_url}/{m.group(1)})",
        content or "",
    )
