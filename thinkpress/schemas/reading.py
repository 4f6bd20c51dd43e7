from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date


class TrackRequest(BaseModel):
    """阅读进度上报（前端 beacon）"""
    postSlug: str = Field(min_length=1, max_length=100)
    sessionId: str = Field(min_length=1, max_length=100)
    scrollDepth: float = Field(ge=0, le=1)
    timeOnPage: int = Field(ge=0, le=86400)


class DailyStats(BaseModel):
    date: date
    views: int
    uniqueVisitors: int


class PostStatsResponse(BaseModel):
    totalViews: int
    totalUniqueVisitors: int
    avgReadTime: int
    avgCompletionRate: float
    dailyStats: List[DailyStats]


class TopPost(BaseModel):
    postId: str
    title: Optional[str] = None
    slug: Optional[str] = None
    views: int


class SiteStatsResponse(BaseModel):
    totalViews: int
    totalUniqueVisitors: int
    topPosts: List[TopPost]


class FlushResponse(BaseModel):
    flushed: int
