from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from thinkpress.schemas.post import PostSummary


class IdeaCreate(BaseModel):
    """创建想法的请求"""
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    relatedIdeas: List[str] = []


class IdeaUpdate(BaseModel):
    """更新想法的请求（slug 不可修改）"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    relatedIdeas: Optional[List[str]] = None


class IdeaResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    postCount: int = 0
    createdAt: datetime
    updatedAt: datetime

    model_config = ConfigDict(from_attributes=True)


class RelatedIdea(BaseModel):
    id: str
    name: str
    slug: str
    sharedPosts: int


class IdeaDetailResponse(BaseModel):
    idea: IdeaResponse
    posts: List[PostSummary]
    relatedIdeas: List[RelatedIdea]


class GraphNode(BaseModel):
    id: str
    name: str
    postCount: int


class GraphEdge(BaseModel):
    source: str
    target: str
    weight: int


class IdeaGraphResponse(BaseModel):
    nodes: List[GraphNode]
    edges: List[GraphEdge]
