"""
文章服务：文章本身 + 只增不改的版本历史

修改标题或正文前，先把修改前的状态（连同修改前的版本号）写入 post_version，
再更新文章并把 currentVersion + 1。反向链接和想法计数作为提交之后的附带操作执行，
失败不回滚主操作。
"""
import logging
import math
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from thinkpress.core.config import settings
from thinkpress.core.database import utc_now
from thinkpress.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from thinkpress.models import Idea, Post, PostStatus, PostVersion, ReadingStats, Reference, post_idea
from thinkpress.services.backlinks import refresh_backlinks_best_effort
from thinkpress.services.ideas import load_ideas, refresh_idea_counts_best_effort
from thinkpress.utils.slug import generate_slug
from thinkpress.utils.text import calculate_reading_time, calculate_word_count, generate_excerpt

logger = logging.getLogger(__name__)

# 列表接口允许的排序字段
SORTABLE_FIELDS = {
    "publishedAt": Post.publishedAt,
    "createdAt": Post.createdAt,
    "updatedAt": Post.updatedAt,
    "title": Post.title,
}

DEFAULT_CHANGE_NOTE = "Updated"

# 与 /api/posts 下的固定路由重名的 slug，公开接口无法按 slug 访问
RESERVED_SLUGS = {"admin"}


def _apply_content(post: Post, content: str) -> None:
    post.content = content
    post.wordCount = calculate_word_count(content)
    post.readingTime = calculate_reading_time(post.wordCount, settings.WORDS_PER_MINUTE)


def _commit_or_conflict(db: Session, detail: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(detail)


# ============ 查询 ============

def get_post_by_id(db: Session, post_id: str) -> Post:
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise NotFoundError("文章不存在")
    return post


def get_published_post_by_slug(db: Session, slug: str) -> Post:
    post = db.query(Post).filter(
        Post.slug == slug,
        Post.status == PostStatus.PUBLISHED.value,
    ).first()
    if not post:
        raise NotFoundError("文章不存在")
    return post


def resolve_post(db: Session, id_or_slug: str) -> Post:
    """
    后台查看文章：先按 id 查，找不到再按 slug 查（任意状态）

    两个阶段分开写，避免一次查询里混用两种语义。
    """
    post = db.query(Post).filter(Post.id == id_or_slug).first()
    if post:
        return post
    post = db.query(Post).filter(Post.slug == id_or_slug).first()
    if post:
        return post
    raise NotFoundError("文章不存在")


def list_posts(
    db: Session,
    status: Optional[str] = PostStatus.PUBLISHED.value,
    idea_slug: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    sort: str = "-publishedAt",
) -> dict:
    """
    文章列表（分页）

    sort 形如 "-publishedAt" / "title"，前缀 "-" 表示倒序；不认识的字段按发布时间倒序。
    idea_slug 不存在时返回空列表。
    """
    limit = limit or settings.DEFAULT_PAGE_SIZE
    limit = max(1, min(limit, settings.MAX_PAGE_SIZE))
    page = max(1, page)

    query = db.query(Post)
    if status:
        query = query.filter(Post.status == status)
    if idea_slug:
        idea = db.query(Idea).filter(Idea.slug == idea_slug).first()
        if not idea:
            return {"posts": [], "pagination": {"page": page, "limit": limit, "total": 0, "pages": 0}}
        query = query.join(post_idea, post_idea.c.postId == Post.id).filter(post_idea.c.ideaId == idea.id)

    descending = sort.startswith("-")
    column = SORTABLE_FIELDS.get(sort.lstrip("-"))
    if column is None:
        column, descending = Post.publishedAt, True
    order = column.desc() if descending else column.asc()

    total = query.count()
    posts = (
        query.order_by(order, Post.createdAt.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "posts": posts,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if total else 0,
        },
    }


def list_post_versions(db: Session, post_id: str) -> list[PostVersion]:
    get_post_by_id(db, post_id)
    return (
        db.query(PostVersion)
        .filter(PostVersion.postId == post_id)
        .order_by(PostVersion.version.desc())
        .all()
    )


def get_post_version(db: Session, post_id: str, version: int) -> PostVersion:
    snapshot = db.query(PostVersion).filter(
        PostVersion.postId == post_id,
        PostVersion.version == version,
    ).first()
    if not snapshot:
        raise NotFoundError("版本不存在")
    return snapshot


# ============ 写操作 ============

def create_post(
    db: Session,
    title: str,
    content: str,
    subtitle: Optional[str] = None,
    excerpt: Optional[str] = None,
    idea_ids: Optional[list[str]] = None,
) -> Post:
    """创建草稿；slug 由标题生成，冲突直接报 Conflict"""
    slug = generate_slug(title, settings.SLUG_MAX_LENGTH)
    if not slug:
        raise InvalidStateError("标题无法生成有效的 slug")
    if slug in RESERVED_SLUGS:
        raise ConflictError(f"slug '{slug}' 为系统保留，请修改标题")

    if db.query(Post.id).filter(Post.slug == slug).first():
        raise ConflictError("同名文章已存在")

    ideas = load_ideas(db, idea_ids or [])

    post = Post(
        slug=slug,
        title=title,
        subtitle=subtitle,
        excerpt=excerpt or generate_excerpt(content, settings.EXCERPT_LENGTH),
        status=PostStatus.DRAFT.value,
        currentVersion=1,
        ideas=ideas,
    )
    _apply_content(post, content)
    db.add(post)
    _commit_or_conflict(db, "同名文章已存在")
    db.refresh(post)
    logger.info(f"Created post: {post.slug}")

    if ideas:
        refresh_idea_counts_best_effort(db, [idea.id for idea in ideas])
    return post


def update_post(db: Session, post_id: str, changes: dict) -> Post:
    """
    更新文章

    changes 只包含调用方实际提供的字段：title / content / subtitle / excerpt / ideas / changeNote。
    - 标题或正文有变化：先写快照（修改前状态 + 修改前版本号），再 currentVersion + 1
    - 正文变化：重算字数、阅读时长，未显式提供 excerpt 时重新生成摘要
    - slug 不随标题变化
    """
    post = get_post_by_id(db, post_id)

    new_title = changes.get("title")
    new_content = changes.get("content")
    title_changed = bool(new_title) and new_title != post.title
    content_changed = bool(new_content) and new_content != post.content

    if title_changed or content_changed:
        db.add(PostVersion(
            postId=post.id,
            version=post.currentVersion,
            title=post.title,
            content=post.content,
            changeNote=changes.get("changeNote") or DEFAULT_CHANGE_NOTE,
        ))
        post.currentVersion = post.currentVersion + 1

    if title_changed:
        post.title = new_title
    if content_changed:
        _apply_content(post, new_content)
        if not changes.get("excerpt"):
            post.excerpt = generate_excerpt(new_content, settings.EXCERPT_LENGTH)
    if changes.get("excerpt"):
        post.excerpt = changes["excerpt"]
    if "subtitle" in changes:
        post.subtitle = changes["subtitle"]

    touched_ideas: list[str] = []
    if changes.get("ideas") is not None:
        old_ids = post.ideaIds
        post.ideas = load_ideas(db, changes["ideas"])
        touched_ideas = list(dict.fromkeys(old_ids + post.ideaIds))

    # (postId, version) 唯一：并发更新时后提交的一方会在这里失败
    _commit_or_conflict(db, "版本冲突，文章已被其他请求修改，请重试")
    db.refresh(post)

    if content_changed and post.status == PostStatus.PUBLISHED.value:
        refresh_backlinks_best_effort(db, post)
    if touched_ideas:
        refresh_idea_counts_best_effort(db, touched_ideas)
    return post


def publish_post(db: Session, post_id: str, seo_metadata: Optional[dict] = None) -> Post:
    """发布文章：只能发布一次，已发布时报 InvalidState"""
    post = get_post_by_id(db, post_id)
    if post.status == PostStatus.PUBLISHED.value:
        raise InvalidStateError("文章已发布")

    post.status = PostStatus.PUBLISHED.value
    post.publishedAt = utc_now()
    if seo_metadata:
        merged = dict(post.seoMetadata or {})
        merged.update({k: v for k, v in seo_metadata.items() if v is not None})
        post.seoMetadata = merged

    db.commit()
    db.refresh(post)
    logger.info(f"Published post: {post.slug}")

    refresh_backlinks_best_effort(db, post)
    if post.ideas:
        refresh_idea_counts_best_effort(db, post.ideaIds)
    return post


def archive_post(db: Session, post_id: str) -> Post:
    """归档：任何状态都可以归档，不触发反向链接重建"""
    post = get_post_by_id(db, post_id)
    was_published = post.status == PostStatus.PUBLISHED.value

    post.status = PostStatus.ARCHIVED.value
    db.commit()
    db.refresh(post)
    logger.info(f"Archived post: {post.slug}")

    if was_published and post.ideas:
        refresh_idea_counts_best_effort(db, post.ideaIds)
    return post


def delete_post(db: Session, post_id: str) -> None:
    """
    删除文章

    级联删除版本、双向引用、阅读统计和想法关联，然后重算相关想法的计数。
    线索里引用该文章的节点保留，读取时 post 为空。
    """
    post = get_post_by_id(db, post_id)
    slug = post.slug
    idea_ids = post.ideaIds

    try:
        db.query(Reference).filter(
            or_(Reference.sourcePostId == post_id, Reference.targetPostId == post_id)
        ).delete(synchronize_session=False)
        db.query(ReadingStats).filter(ReadingStats.postId == post_id).delete(synchronize_session=False)
        # 版本（relationship 级联）和 post_idea 关联行随 ORM 删除一起清理
        db.delete(post)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(f"Deleted post: {slug}")
    if idea_ids:
        refresh_idea_counts_best_effort(db, idea_ids)
