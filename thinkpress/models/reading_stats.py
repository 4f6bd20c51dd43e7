from sqlalchemy import Column, String, Date, Float, Integer, ForeignKey, UniqueConstraint, Index
from thinkpress.core.database import Base
import uuid


class ReadingStats(Base):
    """按天聚合的文章阅读统计 - 由阅读统计缓冲区定期写入"""
    __tablename__ = "reading_stats"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    postId = Column(String(36), ForeignKey("post.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False, index=True)
    views = Column(Integer, nullable=False, default=0)
    uniqueVisitors = Column(Integer, nullable=False, default=0)
    totalReadTime = Column(Integer, nullable=False, default=0)  # 秒
    # 当天观察到的最大滚动深度（取最大值，不是平均值）
    completionRate = Column(Float, nullable=False, default=0.0)
    # 滚动深度越过 25/50/75/100% 的事件数
    scrollP25 = Column(Integer, nullable=False, default=0)
    scrollP50 = Column(Integer, nullable=False, default=0)
    scrollP75 = Column(Integer, nullable=False, default=0)
    scrollP100 = Column(Integer, nullable=False, default=0)

    # 唯一约束：同一篇文章同一天只有一条记录
    __table_args__ = (
        UniqueConstraint("postId", "date", name="uq_reading_stats_post_date"),
        Index("idx_reading_stats_post_date", "postId", "date"),
    )

    def __repr__(self):
        return f"<ReadingStats post={self.postId} date={self.date}>"
