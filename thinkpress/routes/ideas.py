from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from thinkpress.core.database import get_db
from thinkpress.core.security import get_current_user
from thinkpress.models import User
from thinkpress.schemas.idea import (
    IdeaCreate,
    IdeaDetailResponse,
    IdeaGraphResponse,
    IdeaResponse,
    IdeaUpdate,
)
from thinkpress.services import ideas as idea_service

router = APIRouter()


@router.get("", response_model=list[IdeaResponse])
async def list_ideas(db: Session = Depends(get_db)):
    """所有想法，按文章数倒序"""
    return idea_service.list_ideas(db)


@router.get("/graph", response_model=IdeaGraphResponse)
async def get_idea_graph(db: Session = Depends(get_db)):
    """想法关系图（节点 + 共现边）"""
    return idea_service.get_idea_graph(db)


@router.post("/maintenance/recount")
async def recount_ideas(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """维护：重算所有想法的文章数"""
    return {"recounted": idea_service.recount_all_ideas(db)}


@router.get("/{slug}", response_model=IdeaDetailResponse)
async def get_idea(slug: str, db: Session = Depends(get_db)):
    """想法详情：已发布文章 + 关联想法"""
    return idea_service.get_idea_by_slug(db, slug)


@router.post("", response_model=IdeaResponse, status_code=status.HTTP_201_CREATED)
async def create_idea(
    payload: IdeaCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return idea_service.create_idea(
        db,
        name=payload.name,
        description=payload.description,
        related_idea_ids=payload.relatedIdeas,
    )


@router.put("/{idea_id}", response_model=IdeaResponse)
async def update_idea(
    idea_id: str,
    payload: IdeaUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return idea_service.update_idea(db, idea_id, payload.model_dump(exclude_unset=True))


@router.delete("/{idea_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_idea(
    idea_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """删除想法，并从所有文章和关联想法中移除"""
    idea_service.delete_idea(db, idea_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
