from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from thinkpress.models import NodeStatus, ThreadStatus, ThreadVisibility


class ThreadCreate(BaseModel):
    """创建线索的请求"""
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    visibility: ThreadVisibility = ThreadVisibility.PUBLIC


class ThreadUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[ThreadStatus] = None
    visibility: Optional[ThreadVisibility] = None


class NodeCreate(BaseModel):
    """追加节点；order 由服务端分配"""
    postId: str
    status: NodeStatus
    annotation: str = Field(min_length=1, max_length=1000)
    branchFrom: Optional[int] = None


class NodeUpdate(BaseModel):
    """只修改提供的字段；显式传 branchFrom: null 表示改回主干"""
    status: Optional[NodeStatus] = None
    annotation: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    branchFrom: Optional[int] = None


class ThreadResponse(BaseModel):
    id: str
    slug: str
    title: str
    description: Optional[str] = None
    status: str
    visibility: str
    createdAt: datetime
    updatedAt: datetime

    model_config = ConfigDict(from_attributes=True)


class NodePost(BaseModel):
    title: str
    slug: str
    publishedAt: Optional[datetime] = None
    readingTime: int = 0


class NodeResponse(BaseModel):
    id: str
    postId: str
    order: int
    status: str
    annotation: str
    branchFrom: Optional[int] = None
    post: Optional[NodePost] = None

    model_config = ConfigDict(from_attributes=True)


class TimelineNode(NodeResponse):
    branches: List["TimelineNode"] = []


class Timeline(BaseModel):
    trunk: List[TimelineNode]
    orphans: List[NodeResponse]


class ThreadDetailResponse(ThreadResponse):
    nodes: List[NodeResponse]
    timeline: Timeline
