from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from thinkpress.core.database import get_db
from thinkpress.schemas.search import SearchResponse
from thinkpress.services.search import search as run_search

router = APIRouter()


@router.get("", response_model=SearchResponse)
async def search(
    q: str = Query(default="", max_length=200),
    type: Literal["all", "posts", "ideas", "threads"] = "all",
    db: Session = Depends(get_db),
):
    """搜索文章、想法和线索；q 少于 2 个字符时返回空结果"""
    return run_search(db, q, type)
