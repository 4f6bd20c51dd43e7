"""
正文相关的纯文本工具：摘要、字数、阅读时长、markdown 清理、目录提取
"""
import math
import re

from thinkpress.utils.slug import generate_slug

EXCERPT_LENGTH = 160
WORDS_PER_MINUTE = 200

_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`[^`]+`")
_HEADER = re.compile(r"^#+\s+", re.M)
_EMPHASIS = re.compile(r"[*_]{1,2}([^*_]+)[*_]{1,2}")
_IMAGE = re.compile(r"!\[[^\]]*\]\([^)]+\)")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_WIKI_LINK = re.compile(r"\[\[([^\]|]+)(?:\|([^\]]+))?\]\]")
_BLOCKQUOTE = re.compile(r"^>\s+", re.M)
_UNORDERED_LIST = re.compile(r"^[-*+]\s+", re.M)
_ORDERED_LIST = re.compile(r"^\d+\.\s+", re.M)
_HORIZONTAL_RULE = re.compile(r"^[-*_]{3,}$", re.M)
_HEADING_LINE = re.compile(r"^(#{1,6})\s+(.+)$", re.M)


def _strip_common(content: str) -> str:
    text = _CODE_BLOCK.sub("", content)
    text = _INLINE_CODE.sub("", text)
    # 分隔线要在强调/列表之前处理，否则 *** 会被当成强调符号
    text = _HORIZONTAL_RULE.sub("", text)
    text = _HEADER.sub("", text)
    text = _EMPHASIS.sub(r"\1", text)
    # 图片先于链接处理，否则 ![alt](src) 会剩下 "!alt"
    text = _IMAGE.sub("", text)
    text = _LINK.sub(r"\1", text)
    text = _BLOCKQUOTE.sub("", text)
    return text


def generate_excerpt(content: str, max_length: int = EXCERPT_LENGTH) -> str:
    """
    从 markdown 正文生成摘要

    清理 markdown 语法并压缩空白后：
    - 不超过 max_length 直接返回
    - 否则在 max_length 之前的最后一个空格处截断（仅当该位置超过 80% 长度），
      不满足时直接硬截断；截断后追加省略号
    """
    text = _strip_common(content or "")
    text = _UNORDERED_LIST.sub("", text)
    text = _ORDERED_LIST.sub("", text)
    text = re.sub(r"\s+", " ", text).strip()

    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return truncated[:last_space] + "..."
    return truncated + "..."


def calculate_word_count(content: str) -> int:
    return len((content or "").split())


def calculate_reading_time(word_count: int, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """阅读时长（分钟，向上取整）"""
    if word_count <= 0:
        return 0
    return math.ceil(word_count / words_per_minute)


def format_reading_time(minutes: int) -> str:
    if minutes < 1:
        return "less than 1 min"
    if minutes == 1:
        return "1 min"
    return f"{minutes} min"


def strip_markdown(content: str) -> str:
    """去掉 markdown 格式，保留段落换行"""
    text = _strip_common(content or "")
    text = _WIKI_LINK.sub(lambda m: m.group(2) or m.group(1), text)
    text = re.sub(r"\n+", "\n", text)
    return text.strip()


def extract_headings(content: str) -> list[dict]:
    """提取标题，用于生成目录"""
    headings = []
    for match in _HEADING_LINE.finditer(content or ""):
        text = match.group(2).strip()
        headings.append({
            "level": len(match.group(1)),
            "text": text,
            "slug": generate_slug(text),
        })
    return headings
