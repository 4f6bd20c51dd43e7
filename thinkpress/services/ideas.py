"""
想法（Idea）服务

- 维护 postCount 冗余计数（= 引用该想法的已发布文章数）
- 构建想法关系图：节点为想法，边为同一篇已发布文章里同时出现的两个想法，
  权重为跨所有文章聚合的共现次数
"""
import logging
from collections import Counter, defaultdict
from itertools import combinations
from typing import Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from thinkpress.core.config import settings
from thinkpress.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from thinkpress.models import Idea, Post, PostStatus, idea_relation, post_idea
from thinkpress.utils.slug import generate_slug

logger = logging.getLogger(__name__)


def get_idea(db: Session, idea_id: str) -> Idea:
    idea = db.query(Idea).filter(Idea.id == idea_id).first()
    if not idea:
        raise NotFoundError("想法不存在")
    return idea


def load_ideas(db: Session, idea_ids: Iterable[str]) -> list[Idea]:
    """按 id 批量加载，任何一个不存在都报 NotFound"""
    wanted = list(dict.fromkeys(idea_ids))
    if not wanted:
        return []
    ideas = db.query(Idea).filter(Idea.id.in_(wanted)).all()
    found = {idea.id: idea for idea in ideas}
    missing = [iid for iid in wanted if iid not in found]
    if missing:
        raise NotFoundError(f"想法不存在: {', '.join(missing)}")
    return [found[iid] for iid in wanted]


def create_idea(
    db: Session,
    name: str,
    description: Optional[str] = None,
    related_idea_ids: Optional[list[str]] = None,
) -> Idea:
    name = (name or "").strip()
    slug = generate_slug(name, settings.SLUG_MAX_LENGTH)
    if not slug:
        raise InvalidStateError("名称无法生成有效的 slug")

    existing = db.query(Idea).filter(or_(Idea.slug == slug, Idea.name == name)).first()
    if existing:
        raise ConflictError("同名想法已存在")

    idea = Idea(
        name=name,
        slug=slug,
        description=description,
        postCount=0,
        relatedIdeas=load_ideas(db, related_idea_ids or []),
    )
    db.add(idea)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("同名想法已存在")
    db.refresh(idea)
    logger.info(f"Created idea: {idea.slug}")
    return idea


def update_idea(db: Session, idea_id: str, changes: dict) -> Idea:
    """
    更新名称 / 描述 / 关联想法

    slug 创建后固定，改名不会改变 slug，避免外部链接失效。
    """
    idea = get_idea(db, idea_id)

    if changes.get("name"):
        name = changes["name"].strip()
        clash = db.query(Idea).filter(Idea.name == name, Idea.id != idea.id).first()
        if clash:
            raise ConflictError("同名想法已存在")
        idea.name = name
    if "description" in changes:
        idea.description = changes["description"]
    if changes.get("relatedIdeas") is not None:
        related = load_ideas(db, changes["relatedIdeas"])
        idea.relatedIdeas = [r for r in related if r.id != idea.id]

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("同名想法已存在")
    db.refresh(idea)
    return idea


def list_ideas(db: Session) -> list[Idea]:
    return db.query(Idea).order_by(Idea.postCount.desc(), Idea.name).all()


def get_idea_by_slug(db: Session, slug: str) -> dict:
    """
    想法详情

    Returns:
        {"idea": Idea, "posts": [已发布文章，按发布时间倒序],
         "relatedIdeas": [{"id", "name", "slug", "sharedPosts"}]}
        sharedPosts = 同时引用该想法和关联想法的已发布文章数
    """
    idea = db.query(Idea).filter(Idea.slug == slug).first()
    if not idea:
        raise NotFoundError("想法不存在")

    posts = (
        db.query(Post)
        .join(post_idea, post_idea.c.postId == Post.id)
        .filter(post_idea.c.ideaId == idea.id, Post.status == PostStatus.PUBLISHED.value)
        .order_by(Post.publishedAt.desc())
        .all()
    )

    related = list(idea.relatedIdeas)
    shared: Counter = Counter()
    post_ids = [p.id for p in posts]
    related_ids = [r.id for r in related]
    if post_ids and related_ids:
        rows = (
            db.query(post_idea.c.ideaId)
            .filter(post_idea.c.postId.in_(post_ids), post_idea.c.ideaId.in_(related_ids))
            .all()
        )
        shared = Counter(row[0] for row in rows)

    return {
        "idea": idea,
        "posts": posts,
        "relatedIdeas": [
            {"id": r.id, "name": r.name, "slug": r.slug, "sharedPosts": shared.get(r.id, 0)}
            for r in related
        ],
    }


def get_idea_graph(db: Session) -> dict:
    """
    想法关系图

    边按排序后的 (slug, slug) 聚合：同一对想法在多少篇已发布文章里共同出现，权重就是多少。
    只有一篇文章同时带着两个想法才会产生边。
    """
    ideas = db.query(Idea).order_by(Idea.postCount.desc(), Idea.name).all()
    nodes = [{"id": idea.slug, "name": idea.name, "postCount": idea.postCount or 0} for idea in ideas]
    slug_by_id = {idea.id: idea.slug for idea in ideas}

    rows = (
        db.query(post_idea.c.postId, post_idea.c.ideaId)
        .join(Post, Post.id == post_idea.c.postId)
        .filter(Post.status == PostStatus.PUBLISHED.value)
        .all()
    )
    slugs_by_post: dict[str, set[str]] = defaultdict(set)
    for post_id, idea_id in rows:
        slug = slug_by_id.get(idea_id)
        if slug:
            slugs_by_post[post_id].add(slug)

    weights: Counter = Counter()
    for slugs in slugs_by_post.values():
        for pair in combinations(sorted(slugs), 2):
            weights[pair] += 1

    edges = [
        {"source": source, "target": target, "weight": weight}
        for (source, target), weight in sorted(weights.items(), key=lambda item: (-item[1], item[0]))
    ]
    return {"nodes": nodes, "edges": edges}


def update_post_counts(db: Session, idea_ids: Iterable[str]) -> None:
    """按当前数据精确重算指定想法的 postCount"""
    ids = list(dict.fromkeys(i for i in idea_ids if i))
    if not ids:
        return

    rows = (
        db.query(post_idea.c.ideaId, func.count(Post.id))
        .join(Post, Post.id == post_idea.c.postId)
        .filter(post_idea.c.ideaId.in_(ids), Post.status == PostStatus.PUBLISHED.value)
        .group_by(post_idea.c.ideaId)
        .all()
    )
    counts = {idea_id: int(count or 0) for idea_id, count in rows}

    for idea in db.query(Idea).filter(Idea.id.in_(ids)).all():
        idea.postCount = counts.get(idea.id, 0)

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def refresh_idea_counts_best_effort(db: Session, idea_ids: Iterable[str]) -> bool:
    """文章变更后的附带操作：失败只记录日志，由 recount_all_ideas 兜底"""
    ids = list(idea_ids)
    try:
        update_post_counts(db, ids)
        return True
    except SQLAlchemyError as exc:
        logger.exception(f"想法计数重算失败（稍后由维护任务修复）: ideas={ids} err={exc}")
        return False


def recount_all_ideas(db: Session) -> int:
    """维护任务：重算所有想法的 postCount"""
    ids = [iid for (iid,) in db.query(Idea.id).all()]
    update_post_counts(db, ids)
    logger.info(f"Recounted ideas: {len(ids)}")
    return len(ids)


def delete_idea(db: Session, idea_id: str) -> None:
    """
    删除想法

    从所有文章的想法集合、所有其他想法的 relatedIdeas 中移除，再删除本身。
    其他想法的计数不受影响，因此不需要重算。
    """
    idea = get_idea(db, idea_id)
    slug = idea.slug

    try:
        # 其他想法指向它的关联没有反向 relationship，需要手动删除
        db.execute(idea_relation.delete().where(idea_relation.c.relatedIdeaId == idea_id))
        # 文章关联和它自己的 relatedIdeas 随 ORM 删除一起清理
        db.delete(idea)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(f"Deleted idea: {slug}")
