from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from thinkpress.core.database import get_db
from thinkpress.core.security import get_current_user
from thinkpress.models import User
from thinkpress.schemas.thread import (
    NodeCreate,
    NodeResponse,
    NodeUpdate,
    ThreadCreate,
    ThreadDetailResponse,
    ThreadResponse,
    ThreadUpdate,
)
from thinkpress.services import threads as thread_service

router = APIRouter()


@router.get("", response_model=list[ThreadResponse])
async def list_threads(db: Session = Depends(get_db)):
    """公开线索，最近更新的在前"""
    return thread_service.list_threads(db)


@router.get("/admin/{slug}", response_model=ThreadDetailResponse)
async def get_thread_for_editing(
    slug: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """后台查看线索（包括私有线索）"""
    return thread_service.get_thread_by_slug(db, slug, include_private=True)


@router.get("/{slug}", response_model=ThreadDetailResponse)
async def get_thread(slug: str, db: Session = Depends(get_db)):
    """线索详情 + 时间线"""
    return thread_service.get_thread_by_slug(db, slug)


@router.post("", response_model=ThreadResponse, status_code=status.HTTP_201_CREATED)
async def create_thread(
    payload: ThreadCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = payload.model_dump(mode="json")
    return thread_service.create_thread(
        db,
        title=data["title"],
        description=data["description"],
        visibility=data["visibility"],
    )


@router.put("/{thread_id}", response_model=ThreadResponse)
async def update_thread(
    thread_id: str,
    payload: ThreadUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return thread_service.update_thread(db, thread_id, payload.model_dump(mode="json", exclude_unset=True))


@router.delete("/{thread_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_thread(
    thread_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """删除线索（文章不受影响）"""
    thread_service.delete_thread(db, thread_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{thread_id}/nodes", response_model=NodeResponse, status_code=status.HTTP_201_CREATED)
async def add_node(
    thread_id: str,
    payload: NodeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """追加节点，order 自动分配"""
    data = payload.model_dump(mode="json")
    return thread_service.add_node(
        db,
        thread_id,
        post_id=data["postId"],
        status=data["status"],
        annotation=data["annotation"],
        branch_from=data["branchFrom"],
    )


@router.patch("/{thread_id}/nodes/{order}", response_model=NodeResponse)
async def update_node(
    thread_id: str,
    order: int,
    payload: NodeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = payload.model_dump(mode="json", exclude_unset=True)
    kwargs = {}
    if "branchFrom" in data:
        kwargs["branch_from"] = data["branchFrom"]
    return thread_service.update_node(
        db,
        thread_id,
        order,
        status=data.get("status"),
        annotation=data.get("annotation"),
        **kwargs,
    )


@router.delete("/{thread_id}/nodes/{order}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_node(
    thread_id: str,
    order: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """删除节点，其余节点的 order 不变"""
    thread_service.remove_node(db, thread_id, order)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
