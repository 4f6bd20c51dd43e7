"""
阅读统计

前端上报的阅读事件先进入内存缓冲区，按 (文章 slug, 日期) 聚合，再由后台任务定期落库到 reading_stats。
统计是尽力而为的：进程崩溃时缓冲区里的数据会丢失；落库失败时数据放回缓冲区，下一轮重试。

缓冲区属于单个进程，多进程部署时每个进程各自聚合，各自的 uniqueVisitors 互不知晓。
"""
import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkpress.core.config import settings
from thinkpress.core.database import utc_now
from thinkpress.models import Post, ReadingStats

logger = logging.getLogger(__name__)

# 滚动深度阈值 -> ReadingStats 列名
SCROLL_THRESHOLDS = (
    (0.25, "scrollP25"),
    (0.50, "scrollP50"),
    (0.75, "scrollP75"),
    (1.00, "scrollP100"),
)


@dataclass(frozen=True)
class TrackingEvent:
    postSlug: str
    sessionId: str
    scrollDepth: float
    timeOnPage: int


@dataclass
class StatsBucket:
    """一篇文章一天内尚未落库的增量"""
    views: int = 0
    uniqueVisitors: int = 0
    totalReadTime: int = 0
    maxScrollDepth: float = 0.0
    scrollCounts: dict = field(default_factory=lambda: {col: 0 for _, col in SCROLL_THRESHOLDS})

    def merge(self, other: "StatsBucket") -> None:
        self.views += other.views
        self.uniqueVisitors += other.uniqueVisitors
        self.totalReadTime += other.totalReadTime
        self.maxScrollDepth = max(self.maxScrollDepth, other.maxScrollDepth)
        for col, count in other.scrollCounts.items():
            self.scrollCounts[col] = self.scrollCounts.get(col, 0) + count


BucketKey = tuple[str, date]


class ReadingStatsBuffer:
    """
    有界的阅读事件聚合缓冲区

    - 同一 session 在同一天对同一篇文章只计一次浏览；已见过的 session 在当天内跨 flush 保留
    - completionRate 取当天观察到的最大滚动深度
    - 键数量达到 max_keys 后，新的 (文章, 日期) 键的事件会被丢弃；已有键继续累加
    """

    def __init__(self, max_keys: Optional[int] = None, clock: Callable[[], datetime] = utc_now):
        self.max_keys = max_keys or settings.ANALYTICS_BUFFER_MAX_KEYS
        self.clock = clock
        self._buckets: dict[BucketKey, StatsBucket] = {}
        self._sessions: dict[BucketKey, set[str]] = {}
        self._lock = threading.Lock()
        self.dropped_events = 0

    def _today(self) -> date:
        return self.clock().date()

    def _prune_sessions(self, today: date) -> None:
        for key in [k for k in self._sessions if k[1] < today]:
            del self._sessions[key]

    def track(self, event: TrackingEvent) -> bool:
        """记录一条事件；缓冲区已满被丢弃时返回 False"""
        today = self._today()
        key = (event.postSlug, today)
        depth = min(max(float(event.scrollDepth or 0), 0.0), 1.0)

        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                if len(self._buckets) >= self.max_keys:
                    self.dropped_events += 1
                    logger.warning(f"阅读统计缓冲区已满，丢弃事件: post={event.postSlug}")
                    return False
                self._prune_sessions(today)
                bucket = self._buckets[key] = StatsBucket()

            seen = self._sessions.setdefault(key, set())
            if event.sessionId not in seen:
                seen.add(event.sessionId)
                bucket.views += 1
                bucket.uniqueVisitors += 1

            bucket.totalReadTime += max(int(event.timeOnPage or 0), 0)
            for threshold, col in SCROLL_THRESHOLDS:
                if depth >= threshold:
                    bucket.scrollCounts[col] += 1
            if depth > bucket.maxScrollDepth:
                bucket.maxScrollDepth = depth
        return True

    def pending(self) -> int:
        with self._lock:
            return len(self._buckets)

    def snapshot(self) -> dict[BucketKey, StatsBucket]:
        with self._lock:
            return dict(self._buckets)

    def _drain(self) -> dict[BucketKey, StatsBucket]:
        with self._lock:
            drained, self._buckets = self._buckets, {}
            self._prune_sessions(self._today())
            return drained

    def _restore(self, drained: dict[BucketKey, StatsBucket]) -> None:
        with self._lock:
            for key, bucket in drained.items():
                current = self._buckets.get(key)
                if current is None:
                    self._buckets[key] = bucket
                else:
                    bucket.merge(current)
                    self._buckets[key] = bucket

    def flush(self, db: Session) -> int:
        """
        把缓冲区写入 reading_stats

        计数类字段累加，completionRate 取已存值与缓冲值的较大者；找不到 slug 对应文章的键直接丢弃。
        写库失败时回滚并把数据放回缓冲区，不抛异常。

        Returns:
            写入的 (文章, 日期) 条数
        """
        drained = self._drain()
        if not drained:
            return 0

        try:
            slugs = {slug for slug, _ in drained}
            post_ids = dict(db.query(Post.slug, Post.id).filter(Post.slug.in_(slugs)).all())

            flushed = 0
            for (slug, day), bucket in drained.items():
                post_id = post_ids.get(slug)
                if not post_id:
                    logger.debug(f"阅读统计跳过未知文章: {slug}")
                    continue

                row = db.query(ReadingStats).filter(
                    ReadingStats.postId == post_id,
                    ReadingStats.date == day,
                ).first()
                if row is None:
                    row = ReadingStats(postId=post_id, date=day)
                    db.add(row)

                row.views = (row.views or 0) + bucket.views
                row.uniqueVisitors = (row.uniqueVisitors or 0) + bucket.uniqueVisitors
                row.totalReadTime = (row.totalReadTime or 0) + bucket.totalReadTime
                row.completionRate = max(row.completionRate or 0.0, bucket.maxScrollDepth)
                for col, count in bucket.scrollCounts.items():
                    setattr(row, col, (getattr(row, col) or 0) + count)
                flushed += 1

            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            self._restore(drained)
            logger.exception(f"阅读统计落库失败，已放回缓冲区: keys={len(drained)} err={exc}")
            return 0

        if flushed:
            logger.info(f"Flushed reading stats: {flushed}")
        return flushed


class AnalyticsWorker:
    """
    持有唯一一个缓冲区的后台任务

    start() 在应用启动时调用，按间隔定时落库；stop() 在关闭时取消定时任务并做最后一次落库。
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        buffer: Optional[ReadingStatsBuffer] = None,
        interval: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.buffer = buffer or ReadingStatsBuffer()
        self.interval = interval if interval is not None else settings.ANALYTICS_FLUSH_INTERVAL_SECONDS
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def track(self, event: TrackingEvent) -> bool:
        return self.buffer.track(event)

    def _flush_sync(self) -> int:
        db = self.session_factory()
        try:
            return self.buffer.flush(db)
        finally:
            db.close()

    async def flush_now(self) -> int:
        return await asyncio.to_thread(self._flush_sync)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.flush_now()
            except Exception as exc:
                # 定时任务不能因为一次失败退出
                logger.exception(f"阅读统计定时落库异常: {exc}")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Analytics worker started: interval={self.interval}s")

    async def stop(self) -> int:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        flushed = await self.flush_now()
        logger.info(f"Analytics worker stopped: final flush={flushed}")
        return flushed


# ============ 读取 ============

def _start_date(days: int, today: Optional[date] = None) -> date:
    return (today or utc_now().date()) - timedelta(days=days)


def get_post_stats(db: Session, post_id: str, days: int = 30, today: Optional[date] = None) -> dict:
    rows = (
        db.query(ReadingStats)
        .filter(ReadingStats.postId == post_id, ReadingStats.date >= _start_date(days, today))
        .order_by(ReadingStats.date.desc())
        .all()
    )

    total_views = sum(r.views for r in rows)
    total_time = sum(r.totalReadTime for r in rows)
    return {
        "totalViews": total_views,
        "totalUniqueVisitors": sum(r.uniqueVisitors for r in rows),
        "avgReadTime": round(total_time / total_views) if total_views else 0,
        "avgCompletionRate": sum(r.completionRate for r in rows) / len(rows) if rows else 0.0,
        "dailyStats": [
            {"date": r.date, "views": r.views, "uniqueVisitors": r.uniqueVisitors}
            for r in rows
        ],
    }


def get_site_stats(db: Session, days: int = 30, today: Optional[date] = None, top: int = 10) -> dict:
    start = _start_date(days, today)

    total_views, total_visitors = (
        db.query(func.coalesce(func.sum(ReadingStats.views), 0), func.coalesce(func.sum(ReadingStats.uniqueVisitors), 0))
        .filter(ReadingStats.date >= start)
        .one()
    )

    views = func.sum(ReadingStats.views).label("views")
    top_rows = (
        db.query(ReadingStats.postId, Post.title, Post.slug, views)
        .join(Post, Post.id == ReadingStats.postId)
        .filter(ReadingStats.date >= start)
        .group_by(ReadingStats.postId, Post.title, Post.slug)
        .order_by(views.desc())
        .limit(top)
        .all()
    )

    return {
        "totalViews": int(total_views or 0),
        "totalUniqueVisitors": int(total_visitors or 0),
        "topPosts": [
            {"postId": post_id, "title": title, "slug": slug, "views": int(count or 0)}
            for post_id, title, slug, count in top_rows
        ],
    }
