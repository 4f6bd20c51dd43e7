"""
PostVersion 模型 - 文章版本快照
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Integer, Index
from sqlalchemy.orm import relationship
from thinkpress.core.database import Base, utc_now
import uuid


class PostVersion(Base):
    """
    文章版本快照

    每次修改标题或正文之前，先把修改前的标题/正文连同修改前的版本号写入一条快照。
    快照写入后不再修改；同一篇文章的版本号唯一，重复插入会触发唯一约束。
    """
    __tablename__ = "post_version"
    __table_args__ = (
        Index("idx_post_version_post_version", "postId", "version", unique=True),
        Index("idx_post_version_post_time", "postId", "createdAt"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    postId = Column(String(36), ForeignKey("post.id", ondelete="CASCADE"), nullable=False)

    # 快照对应的版本号（即修改前的 currentVersion）
    version = Column(Integer, nullable=False)

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)

    # 作者填写的修改说明
    changeNote = Column(String(200), nullable=True)

    createdAt = Column(DateTime, default=utc_now, nullable=False)

    post = relationship("Post", back_populates="versions")

    def __repr__(self):
        return f"<PostVersion {self.version} for Post {self.postId}>"
