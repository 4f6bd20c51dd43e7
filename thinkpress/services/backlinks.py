"""
反向链接服务

从文章正文中提取站内链接，解析到已发布文章，维护 reference 表（source -> target）。
每次重建只删除/插入 sourcePostId = 当前文章 的行，不同文章的重建互不影响。
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkpress.models import Post, PostStatus, Reference, ReferenceType
from thinkpress.utils.links import extract_internal_links

logger = logging.getLogger(__name__)

# 与 Reference.context 列长度一致
CONTEXT_MAX_LENGTH = 500


def rebuild_backlinks_for_post(db: Session, post_id: str, content: str) -> int:
    """
    重建一篇文章的出链

    链接到草稿/不存在的文章、以及链接到自己的都会被丢弃。
    先删后插在同一个事务里提交；相同正文重复调用结果不变。

    Returns:
        写入的引用条数
    """
    links = extract_internal_links(content)

    try:
        slug_to_id: dict[str, str] = {}
        if links:
            rows = (
                db.query(Post.id, Post.slug)
                .filter(
                    Post.slug.in_([link.slug for link in links]),
                    Post.status == PostStatus.PUBLISHED.value,
                    Post.id != post_id,
                )
                .all()
            )
            slug_to_id = {slug: pid for pid, slug in rows}

        db.query(Reference).filter(Reference.sourcePostId == post_id).delete(synchronize_session=False)

        references = [
            Reference(
                sourcePostId=post_id,
                targetPostId=slug_to_id[link.slug],
                type=ReferenceType.EXPLICIT.value,
                context=(link.context or "")[:CONTEXT_MAX_LENGTH],
            )
            for link in links
            if link.slug in slug_to_id
        ]
        db.add_all(references)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.debug(f"Rebuilt backlinks: post={post_id}, candidates={len(links)}, references={len(references)}")
    return len(references)


def refresh_backlinks_best_effort(db: Session, post: Post) -> Optional[int]:
    """
    发布/更新之后调用：失败只记录日志，不影响已经提交的主操作

    遗漏的边由 rebuild_all_backlinks 定期修复。
    """
    post_id = post.id
    try:
        return rebuild_backlinks_for_post(db, post_id, post.content)
    except SQLAlchemyError as exc:
        logger.exception(f"反向链接重建失败（稍后由维护任务修复）: post={post_id} err={exc}")
        return None


def _summarize(post: Post, with_excerpt: bool = True) -> dict:
    summary = {"id": post.id, "title": post.title, "slug": post.slug}
    if with_excerpt:
        summary["excerpt"] = post.excerpt or ""
    return summary


def get_backlinks(db: Session, post_id: str) -> list[dict]:
    """引用了该文章的已发布文章（按引用创建时间倒序）；来源被归档后不再列出"""
    rows = (
        db.query(Reference, Post)
        .join(Post, Post.id == Reference.sourcePostId)
        .filter(Reference.targetPostId == post_id, Post.status == PostStatus.PUBLISHED.value)
        .order_by(Reference.createdAt.desc(), Post.title)
        .all()
    )
    return [
        {"post": _summarize(source), "context": ref.context or "", "type": ref.type}
        for ref, source in rows
    ]


def get_outbound_links(db: Session, post_id: str) -> list[dict]:
    """该文章引用的文章"""
    rows = (
        db.query(Reference, Post)
        .join(Post, Post.id == Reference.targetPostId)
        .filter(Reference.sourcePostId == post_id)
        .order_by(Reference.createdAt.desc(), Post.title)
        .all()
    )
    return [
        {"post": _summarize(target, with_excerpt=False), "context": ref.context or "", "type": ref.type}
        for ref, target in rows
    ]


def rebuild_all_backlinks(db: Session) -> dict:
    """
    维护任务：对所有已发布文章重建出链

    单篇失败不会中断整体，失败数记在 failed 里。
    """
    posts = (
        db.query(Post.id, Post.content)
        .filter(Post.status == PostStatus.PUBLISHED.value)
        .order_by(Post.publishedAt)
        .all()
    )

    processed = 0
    total_references = 0
    failed = 0
    for post_id, content in posts:
        try:
            total_references += rebuild_backlinks_for_post(db, post_id, content)
            processed += 1
        except SQLAlchemyError as exc:
            failed += 1
            logger.exception(f"反向链接重建失败: post={post_id} err={exc}")

    logger.info(f"Rebuilt all backlinks: processed={processed}, references={total_references}, failed={failed}")
    return {"processed": processed, "references": total_references, "failed": failed}
