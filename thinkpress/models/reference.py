from enum import Enum
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from thinkpress.core.database import Base, utc_now
import uuid


class ReferenceType(str, Enum):
    EXPLICIT = "explicit"
    IMPLICIT = "implicit"


class Reference(Base):
    """文章之间的引用（反向链接的边）"""
    __tablename__ = "reference"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sourcePostId = Column(String(36), ForeignKey("post.id", ondelete="CASCADE"), nullable=False, index=True)
    targetPostId = Column(String(36), ForeignKey("post.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(16), nullable=False, default=ReferenceType.EXPLICIT.value)
    context = Column(String(500), nullable=True)  # 链接附近的原文片段
    createdAt = Column(DateTime, default=utc_now, nullable=False)

    # 唯一约束：同一对文章只保留一条边
    __table_args__ = (
        UniqueConstraint("sourcePostId", "targetPostId", name="uq_reference_source_target"),
    )

    source = relationship("Post", foreign_keys=[sourcePostId])
    target = relationship("Post", foreign_keys=[targetPostId])

    def __repr__(self):
        return f"<Reference {self.sourcePostId} -> {self.targetPostId}>"
