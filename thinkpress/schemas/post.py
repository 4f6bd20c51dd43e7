from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime


class IdeaBrief(BaseModel):
    id: str
    name: str
    slug: str

    model_config = ConfigDict(from_attributes=True)


class SeoMetadata(BaseModel):
    seoTitle: Optional[str] = Field(default=None, max_length=70)
    seoDescription: Optional[str] = Field(default=None, max_length=160)
    ogImage: Optional[str] = None
    canonicalUrl: Optional[str] = None


class PostCreate(BaseModel):
    """创建文章的请求"""
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    subtitle: Optional[str] = Field(default=None, max_length=300)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    ideas: List[str] = []


class PostUpdate(BaseModel):
    """更新文章的请求，未提供的字段不变"""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1)
    subtitle: Optional[str] = Field(default=None, max_length=300)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    ideas: Optional[List[str]] = None
    changeNote: Optional[str] = Field(default=None, max_length=200)


class PostSummary(BaseModel):
    """列表里的文章（不含正文）"""
    id: str
    slug: str
    title: str
    subtitle: Optional[str] = None
    excerpt: Optional[str] = None
    status: str
    publishedAt: Optional[datetime] = None
    readingTime: int = 0
    ideas: List[IdeaBrief] = []
    createdAt: datetime
    updatedAt: datetime

    model_config = ConfigDict(from_attributes=True)


class PostResponse(PostSummary):
    content: str
    currentVersion: int
    wordCount: int = 0
    seoMetadata: Optional[SeoMetadata] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class PostListResponse(BaseModel):
    posts: List[PostSummary]
    pagination: Pagination


class PostVersionResponse(BaseModel):
    id: str
    postId: str
    version: int
    title: str
    content: str
    changeNote: Optional[str] = None
    createdAt: datetime

    model_config = ConfigDict(from_attributes=True)


class LinkedPost(BaseModel):
    id: str
    title: str
    slug: str
    excerpt: Optional[str] = None


class LinkResponse(BaseModel):
    """反向链接 / 出链"""
    post: LinkedPost
    context: str
    type: str


class ThreadMembership(BaseModel):
    title: str
    slug: str
    status: str


class PostDetailResponse(BaseModel):
    """公开文章页：文章 + 反向链接 + 所在线索"""
    post: PostResponse
    backlinks: List[LinkResponse]
    threads: List[ThreadMembership]
