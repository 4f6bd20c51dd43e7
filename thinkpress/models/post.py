from enum import Enum
from sqlalchemy import Column, String, Text, Integer, DateTime, JSON, Index
from sqlalchemy.orm import relationship
from thinkpress.core.database import Base, utc_now
import uuid


class PostStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Post(Base):
    """文章"""
    __tablename__ = "post"
    __table_args__ = (
        Index("idx_post_status_published", "status", "publishedAt"),
        Index("idx_post_status_updated", "status", "updatedAt"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # 创建后不再修改，避免外部链接失效
    slug = Column(String(100), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    subtitle = Column(String(300), nullable=True)
    content = Column(Text, nullable=False)  # markdown 正文
    excerpt = Column(String(500), nullable=True)
    status = Column(String(16), nullable=False, default=PostStatus.DRAFT.value)  # 使用 String 避免 Enum 大小写问题
    publishedAt = Column(DateTime, nullable=True)
    currentVersion = Column(Integer, nullable=False, default=1)
    # 派生字段：每次正文变化时同步重算
    wordCount = Column(Integer, nullable=False, default=0)
    readingTime = Column(Integer, nullable=False, default=0)
    # SEO 字段，如 {"seoTitle": "...", "seoDescription": "...", "ogImage": "...", "canonicalUrl": "..."}
    seoMetadata = Column(JSON, nullable=True)
    createdAt = Column(DateTime, default=utc_now, nullable=False)
    updatedAt = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # 关系
    ideas = relationship("Idea", secondary="post_idea", back_populates="posts", order_by="Idea.name")
    versions = relationship(
        "PostVersion",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="PostVersion.version.desc()",
    )

    @property
    def ideaIds(self) -> list[str]:
        return [idea.id for idea in self.ideas]

    def __repr__(self):
        return f"<Post {self.slug}>"
