from pydantic import BaseModel
from typing import List


class PostHit(BaseModel):
    slug: str
    title: str
    excerpt: str
    score: int


class IdeaHit(BaseModel):
    slug: str
    name: str
    postCount: int


class ThreadHit(BaseModel):
    slug: str
    title: str


class SearchResponse(BaseModel):
    posts: List[PostHit]
    ideas: List[IdeaHit]
    threads: List[ThreadHit]
