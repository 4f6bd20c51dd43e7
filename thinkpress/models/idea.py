from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from thinkpress.core.database import Base, utc_now
import uuid


# 文章 <-> 想法 多对多
post_idea = Table(
    "post_idea",
    Base.metadata,
    Column("postId", String(36), ForeignKey("post.id", ondelete="CASCADE"), primary_key=True),
    Column("ideaId", String(36), ForeignKey("idea.id", ondelete="CASCADE"), primary_key=True, index=True),
)

# 想法之间的关联：有向存储，ideaId -> relatedIdeaId
idea_relation = Table(
    "idea_relation",
    Base.metadata,
    Column("ideaId", String(36), ForeignKey("idea.id", ondelete="CASCADE"), primary_key=True),
    Column("relatedIdeaId", String(36), ForeignKey("idea.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Idea(Base):
    """想法（带关系图的标签）"""
    __tablename__ = "idea"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), unique=True, nullable=False)
    # 由 name 生成，创建后固定
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    # 冗余计数：引用该想法的已发布文章数
    postCount = Column(Integer, nullable=False, default=0, index=True)
    createdAt = Column(DateTime, default=utc_now, nullable=False)
    updatedAt = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # 关系
    posts = relationship("Post", secondary=post_idea, back_populates="ideas")
    relatedIdeas = relationship(
        "Idea",
        secondary=idea_relation,
        primaryjoin=lambda: Idea.id == idea_relation.c.ideaId,
        secondaryjoin=lambda: Idea.id == idea_relation.c.relatedIdeaId,
        order_by=lambda: Idea.name,
    )

    def __repr__(self):
        return f"<Idea {self.slug}>"
