from enum import Enum
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from thinkpress.core.database import Base, utc_now
import uuid


class ThreadStatus(str, Enum):
    ACTIVE = "active"
    CONCLUDED = "concluded"
    PAUSED = "paused"


class ThreadVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class NodeStatus(str, Enum):
    FOUNDATIONAL = "foundational"
    ACTIVE = "active"
    SUPERSEDED = "superseded"
    TANGENT = "tangent"


class ThoughtThread(Base):
    """思路线索：按顺序（可分叉）串起来的一组文章"""
    __tablename__ = "thought_thread"
    __table_args__ = (
        Index("idx_thread_visibility_updated", "visibility", "updatedAt"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    slug = Column(String(100), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default=ThreadStatus.ACTIVE.value)
    visibility = Column(String(16), nullable=False, default=ThreadVisibility.PUBLIC.value)
    # 下一个节点的 order；只增不减，删掉的 order 不会再分配
    nextOrder = Column(Integer, nullable=False, default=0)
    createdAt = Column(DateTime, default=utc_now, nullable=False)
    updatedAt = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    nodes = relationship(
        "ThreadNode",
        back_populates="thread",
        cascade="all, delete-orphan",
        order_by="ThreadNode.order",
    )

    def __repr__(self):
        return f"<ThoughtThread {self.slug}>"


class ThreadNode(Base):
    """
    线索中的一个节点

    order 在线索内唯一，追加时取线索的 nextOrder，删除节点后不重新编号，也不复用。
    branchFrom 指向同一线索内另一个节点的 order（主干节点为 NULL），不做引用完整性校验。
    postId 不设外键：文章被删除后节点仍然保留，读取时 post 为空。
    """
    __tablename__ = "thread_node"
    __table_args__ = (
        UniqueConstraint("threadId", "order", name="uq_thread_node_order"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    threadId = Column(String(36), ForeignKey("thought_thread.id", ondelete="CASCADE"), nullable=False, index=True)
    postId = Column(String(36), nullable=False, index=True)
    order = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False)
    annotation = Column(Text, nullable=False)
    branchFrom = Column(Integer, nullable=True)

    thread = relationship("ThoughtThread", back_populates="nodes")

    def __repr__(self):
        return f"<ThreadNode {self.order} of Thread {self.threadId}>"
