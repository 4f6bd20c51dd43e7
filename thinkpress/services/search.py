"""
站内搜索：文章 / 想法 / 线索

文章按简单的文本匹配得分排序：每个搜索词在标题中出现一次计 3 分，在正文中出现一次计 1 分。
"""
import re
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from thinkpress.models import Idea, Post, PostStatus, ThoughtThread, ThreadVisibility

MIN_QUERY_LENGTH = 2
POST_LIMIT = 10
IDEA_LIMIT = 5
THREAD_LIMIT = 5

TITLE_WEIGHT = 3
CONTENT_WEIGHT = 1

SEARCH_TYPES = ("all", "posts", "ideas", "threads")


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _score(post: Post, terms: list[str]) -> int:
    title = (post.title or "").lower()
    content = (post.content or "").lower()
    return sum(title.count(t) * TITLE_WEIGHT + content.count(t) * CONTENT_WEIGHT for t in terms)


def highlight_match(text: Optional[str], query: str) -> str:
    """用 <mark> 包裹匹配到的文本（不区分大小写）"""
    if not text or not query:
        return text or ""
    pattern = re.compile(f"({re.escape(query)})", re.IGNORECASE)
    return pattern.sub(r"<mark>\1</mark>", text)


def search_posts(db: Session, query: str) -> list[dict]:
    terms = list(dict.fromkeys(t.lower() for t in query.split() if t))
    conditions = []
    for term in terms:
        pattern = _like_pattern(term)
        conditions.append(Post.title.ilike(pattern, escape="\\"))
        conditions.append(Post.content.ilike(pattern, escape="\\"))

    candidates = (
        db.query(Post)
        .filter(Post.status == PostStatus.PUBLISHED.value, or_(*conditions))
        .all()
    )
    scored = sorted(
        ((post, _score(post, terms)) for post in candidates),
        key=lambda item: (-item[1], item[0].title),
    )[:POST_LIMIT]

    return [
        {
            "slug": post.slug,
            "title": highlight_match(post.title, query),
            "excerpt": highlight_match(post.excerpt or "", query),
            "score": score,
        }
        for post, score in scored
    ]


def search_ideas(db: Session, query: str) -> list[dict]:
    ideas = (
        db.query(Idea)
        .filter(Idea.name.ilike(_like_pattern(query), escape="\\"))
        .order_by(Idea.postCount.desc(), Idea.name)
        .limit(IDEA_LIMIT)
        .all()
    )
    return [{"slug": i.slug, "name": i.name, "postCount": i.postCount or 0} for i in ideas]


def search_threads(db: Session, query: str) -> list[dict]:
    pattern = _like_pattern(query)
    threads = (
        db.query(ThoughtThread)
        .filter(
            ThoughtThread.visibility == ThreadVisibility.PUBLIC.value,
            or_(
                ThoughtThread.title.ilike(pattern, escape="\\"),
                ThoughtThread.description.ilike(pattern, escape="\\"),
            ),
        )
        .order_by(ThoughtThread.updatedAt.desc())
        .limit(THREAD_LIMIT)
        .all()
    )
    return [{"slug": t.slug, "title": t.title} for t in threads]


def search(db: Session, query: Optional[str], type: str = "all") -> dict:
    """
    统一搜索入口

    query 去掉首尾空白后不足 2 个字符时直接返回空结果。
    type 取 all / posts / ideas / threads。
    """
    result = {"posts": [], "ideas": [], "threads": []}
    term = (query or "").strip()
    if len(term) < MIN_QUERY_LENGTH:
        return result

    if type in ("all", "posts"):
        result["posts"] = search_posts(db, term)
    if type in ("all", "ideas"):
        result["ideas"] = search_ideas(db, term)
    if type in ("all", "threads"):
        result["threads"] = search_threads(db, term)
    return result
