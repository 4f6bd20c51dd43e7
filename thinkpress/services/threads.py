"""
思路线索服务

节点 order 在线索内唯一：追加时取 max + 1（空线索从 0 开始），删除节点不重新编号。
branchFrom 不做校验，指向已删除节点的分支在时间线里作为 orphans 返回。
"""
import logging
from collections import defaultdict
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from thinkpress.core.config import settings
from thinkpress.core.database import utc_now
from thinkpress.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from thinkpress.models import Post, PostStatus, ThoughtThread, ThreadNode, ThreadVisibility
from thinkpress.utils.slug import generate_slug

logger = logging.getLogger(__name__)

# update_node 时区分"未提供"和"显式设为 None"
_UNSET = object()


def _get_thread(db: Session, thread_id: str) -> ThoughtThread:
    thread = db.query(ThoughtThread).filter(ThoughtThread.id == thread_id).first()
    if not thread:
        raise NotFoundError("线索不存在")
    return thread


def _touch(thread: ThoughtThread) -> None:
    # 节点变化不会触发线索行本身的 onupdate
    thread.updatedAt = utc_now()


# ============ 线索 ============

def create_thread(
    db: Session,
    title: str,
    description: Optional[str] = None,
    visibility: str = ThreadVisibility.PUBLIC.value,
) -> ThoughtThread:
    slug = generate_slug(title, settings.SLUG_MAX_LENGTH)
    if not slug:
        raise InvalidStateError("标题无法生成有效的 slug")
    if db.query(ThoughtThread.id).filter(ThoughtThread.slug == slug).first():
        raise ConflictError("同名线索已存在")

    thread = ThoughtThread(
        slug=slug,
        title=title,
        description=description,
        visibility=visibility or ThreadVisibility.PUBLIC.value,
    )
    db.add(thread)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("同名线索已存在")
    db.refresh(thread)
    logger.info(f"Created thread: {thread.slug}")
    return thread


def update_thread(db: Session, thread_id: str, changes: dict) -> ThoughtThread:
    """只更新提供的字段：title / description / status / visibility（slug 不变）"""
    thread = _get_thread(db, thread_id)

    if changes.get("title"):
        thread.title = changes["title"]
    if "description" in changes:
        thread.description = changes["description"]
    if changes.get("status"):
        thread.status = changes["status"]
    if changes.get("visibility"):
        thread.visibility = changes["visibility"]

    db.commit()
    db.refresh(thread)
    return thread


def delete_thread(db: Session, thread_id: str) -> None:
    """删除线索及其节点，文章本身不受影响"""
    thread = _get_thread(db, thread_id)
    slug = thread.slug
    db.delete(thread)
    db.commit()
    logger.info(f"Deleted thread: {slug}")


def list_threads(db: Session) -> list[ThoughtThread]:
    """公开线索，最近更新的在前"""
    return (
        db.query(ThoughtThread)
        .filter(ThoughtThread.visibility == ThreadVisibility.PUBLIC.value)
        .order_by(ThoughtThread.updatedAt.desc())
        .all()
    )


# ============ 节点 ============

def add_node(
    db: Session,
    thread_id: str,
    post_id: str,
    status: str,
    annotation: str,
    branch_from: Optional[int] = None,
) -> ThreadNode:
    thread = _get_thread(db, thread_id)
    if not db.query(Post.id).filter(Post.id == post_id).first():
        raise NotFoundError("文章不存在")

    max_order = db.query(func.max(ThreadNode.order)).filter(ThreadNode.threadId == thread.id).scalar()
    order = max(thread.nextOrder or 0, (max_order if max_order is not None else -1) + 1)
    thread.nextOrder = order + 1
    node = ThreadNode(
        threadId=thread.id,
        postId=post_id,
        order=order,
        status=status,
        annotation=annotation,
        branchFrom=branch_from,
    )
    db.add(node)
    _touch(thread)
    try:
        db.commit()
    except IntegrityError:
        # 两个请求同时追加拿到了同一个 order
        db.rollback()
        raise ConflictError("节点顺序冲突，请重试")
    db.refresh(node)
    logger.debug(f"Added node: thread={thread.slug} order={node.order} post={post_id}")
    return node


def update_node(
    db: Session,
    thread_id: str,
    order: int,
    status: Optional[str] = None,
    annotation: Optional[str] = None,
    branch_from=_UNSET,
) -> ThreadNode:
    """只修改提供的字段；branch_from=None 表示显式改回主干"""
    thread = _get_thread(db, thread_id)
    node = db.query(ThreadNode).filter(
        ThreadNode.threadId == thread.id,
        ThreadNode.order == order,
    ).first()
    if not node:
        raise NotFoundError("线索中不存在该节点")

    if status:
        node.status = status
    if annotation is not None:
        node.annotation = annotation
    if branch_from is not _UNSET:
        node.branchFrom = branch_from

    _touch(thread)
    db.commit()
    db.refresh(node)
    return node


def remove_node(db: Session, thread_id: str, order: int) -> ThoughtThread:
    """删除节点；其余节点的 order 和 branchFrom 保持原样。不存在的 order 视为已删除"""
    thread = _get_thread(db, thread_id)
    removed = (
        db.query(ThreadNode)
        .filter(ThreadNode.threadId == thread.id, ThreadNode.order == order)
        .delete(synchronize_session=False)
    )
    if removed:
        _touch(thread)
    db.commit()
    return thread


# ============ 读取 ============

def _post_summaries(db: Session, post_ids: Iterable[str]) -> dict[str, dict]:
    ids = list(set(post_ids))
    if not ids:
        return {}
    rows = (
        db.query(Post.id, Post.title, Post.slug, Post.publishedAt, Post.readingTime)
        .filter(Post.id.in_(ids), Post.status == PostStatus.PUBLISHED.value)
        .all()
    )
    return {
        pid: {"title": title, "slug": slug, "publishedAt": published_at, "readingTime": reading_time or 0}
        for pid, title, slug, published_at, reading_time in rows
    }


def serialize_node(node: ThreadNode, post: Optional[dict] = None) -> dict:
    return {
        "id": node.id,
        "postId": node.postId,
        "order": node.order,
        "status": node.status,
        "annotation": node.annotation,
        "branchFrom": node.branchFrom,
        "post": post,
    }


def get_thread_by_slug(db: Session, slug: str, include_private: bool = False) -> dict:
    """
    线索详情

    节点附带文章摘要（title / slug / publishedAt / readingTime）；
    文章未发布或已删除时 post 为 None。
    """
    query = db.query(ThoughtThread).filter(ThoughtThread.slug == slug)
    if not include_private:
        query = query.filter(ThoughtThread.visibility == ThreadVisibility.PUBLIC.value)
    thread = query.first()
    if not thread:
        raise NotFoundError("线索不存在")

    nodes = list(thread.nodes)
    summaries = _post_summaries(db, [n.postId for n in nodes])
    node_dicts = [serialize_node(n, summaries.get(n.postId)) for n in nodes]

    return {
        "id": thread.id,
        "slug": thread.slug,
        "title": thread.title,
        "description": thread.description,
        "status": thread.status,
        "visibility": thread.visibility,
        "createdAt": thread.createdAt,
        "updatedAt": thread.updatedAt,
        "nodes": node_dicts,
        "timeline": build_timeline(node_dicts),
    }


def get_threads_for_post(db: Session, post_id: str) -> list[dict]:
    """包含该文章的公开线索"""
    threads = (
        db.query(ThoughtThread)
        .join(ThreadNode, ThreadNode.threadId == ThoughtThread.id)
        .filter(
            ThreadNode.postId == post_id,
            ThoughtThread.visibility == ThreadVisibility.PUBLIC.value,
        )
        .distinct()
        .order_by(ThoughtThread.updatedAt.desc())
        .all()
    )
    return [{"title": t.title, "slug": t.slug, "status": t.status} for t in threads]


def build_timeline(nodes: list[dict]) -> dict:
    """
    把节点整理成时间线（纯函数）

    - trunk：branchFrom 为空的节点，按 order 升序，每个带上自己的 branches
    - branches：按 branchFrom 分组，组内按 order 升序
    - orphans：branchFrom 指向的节点不存在的分支节点

    Returns:
        {"trunk": [{**node, "branches": [...]}], "orphans": [...]}
    """
    ordered = sorted(nodes, key=lambda n: n["order"])
    orders = {n["order"] for n in ordered}

    branches: dict[int, list[dict]] = defaultdict(list)
    orphans: list[dict] = []
    trunk: list[dict] = []
    for node in ordered:
        parent = node.get("branchFrom")
        if parent is None:
            trunk.append(node)
        elif parent in orders:
            branches[parent].append(node)
        else:
            orphans.append(node)

    # 分支挂在分支上时同样嵌到父节点下；用显式栈展开，不限制分支深度
    placed: set[int] = set()
    timeline: list[dict] = []
    stack: list[tuple[dict, list[dict]]] = [(n, timeline) for n in reversed(trunk)]
    while stack:
        node, siblings = stack.pop()
        placed.add(node["order"])
        entry = {**node, "branches": []}
        siblings.append(entry)
        for child in reversed(branches.get(node["order"], [])):
            stack.append((child, entry["branches"]))
    # 互相指向的分支（环）挂不到主干上，也归入 orphans
    orphans.extend(
        n for n in ordered
        if n.get("branchFrom") is not None and n["branchFrom"] in orders and n["order"] not in placed
    )
    orphans.sort(key=lambda n: n["order"])
    return {"trunk": timeline, "orphans": orphans}
