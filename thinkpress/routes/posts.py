from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import Optional
from thinkpress.core.database import get_db
from thinkpress.core.security import get_current_user
from thinkpress.models import PostStatus, User
from thinkpress.schemas.post import (
    LinkResponse,
    PostCreate,
    PostDetailResponse,
    PostListResponse,
    PostResponse,
    PostUpdate,
    PostVersionResponse,
    SeoMetadata,
)
from thinkpress.services import backlinks as backlink_service
from thinkpress.services import posts as post_service
from thinkpress.services.threads import get_threads_for_post

router = APIRouter()


# ============ 公开接口 ============

@router.get("", response_model=PostListResponse)
async def list_published_posts(
    idea: Optional[str] = Query(default=None, description="按想法 slug 过滤"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    sort: str = Query(default="-publishedAt"),
    db: Session = Depends(get_db),
):
    """已发布文章列表"""
    return post_service.list_posts(
        db,
        status=PostStatus.PUBLISHED.value,
        idea_slug=idea,
        page=page,
        limit=limit,
        sort=sort,
    )


# ============ 后台接口 ============

@router.get("/admin", response_model=PostListResponse)
async def list_all_posts(
    status_filter: Optional[PostStatus] = Query(default=None, alias="status"),
    idea: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    sort: str = Query(default="-updatedAt"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """后台文章列表（任意状态）"""
    return post_service.list_posts(
        db,
        status=status_filter.value if status_filter else None,
        idea_slug=idea,
        page=page,
        limit=limit,
        sort=sort,
    )


@router.get("/admin/{id_or_slug}", response_model=PostResponse)
async def get_post_for_editing(
    id_or_slug: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """后台查看文章：id 或 slug 均可"""
    return post_service.resolve_post(db, id_or_slug)


@router.post("/maintenance/rebuild-backlinks")
async def rebuild_backlinks(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """维护：重建所有已发布文章的反向链接"""
    return backlink_service.rebuild_all_backlinks(db)


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """创建草稿"""
    return post_service.create_post(
        db,
        title=payload.title,
        content=payload.content,
        subtitle=payload.subtitle,
        excerpt=payload.excerpt,
        idea_ids=payload.ideas,
    )


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    payload: PostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """更新文章；标题或正文变化时生成新版本"""
    return post_service.update_post(db, post_id, payload.model_dump(exclude_unset=True))


@router.post("/{post_id}/publish", response_model=PostResponse)
async def publish_post(
    post_id: str,
    payload: Optional[SeoMetadata] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """发布文章"""
    seo = payload.model_dump(exclude_none=True) if payload else None
    return post_service.publish_post(db, post_id, seo)


@router.post("/{post_id}/archive", response_model=PostResponse)
async def archive_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """归档文章"""
    return post_service.archive_post(db, post_id)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """删除文章（连同版本、引用和阅读统计）"""
    post_service.delete_post(db, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{post_id}/versions", response_model=list[PostVersionResponse])
async def list_versions(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """版本历史（新的在前）"""
    return post_service.list_post_versions(db, post_id)


@router.get("/{post_id}/versions/{version}", response_model=PostVersionResponse)
async def get_version(
    post_id: str,
    version: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return post_service.get_post_version(db, post_id, version)


@router.get("/{post_id}/outbound", response_model=list[LinkResponse])
async def get_outbound_links(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """该文章引用了哪些文章"""
    post_service.get_post_by_id(db, post_id)
    return backlink_service.get_outbound_links(db, post_id)


# ============ 公开接口（slug） ============

@router.get("/{slug}", response_model=PostDetailResponse)
async def get_post(slug: str, db: Session = Depends(get_db)):
    """文章详情：正文 + 反向链接 + 所在线索"""
    post = post_service.get_published_post_by_slug(db, slug)
    return {
        "post": post,
        "backlinks": backlink_service.get_backlinks(db, post.id),
        "threads": get_threads_for_post(db, post.id),
    }


@router.get("/{slug}/backlinks", response_model=list[LinkResponse])
async def get_backlinks(slug: str, db: Session = Depends(get_db)):
    post = post_service.get_published_post_by_slug(db, slug)
    return backlink_service.get_backlinks(db, post.id)
