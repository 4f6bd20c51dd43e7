"""
Tests for the reading stats buffer, worker and stats queries.
"""
import asyncio
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkpress.core.database import SessionLocal
from thinkpress.models import ReadingStats
from thinkpress.services.analytics import (
    AnalyticsWorker,
    ReadingStatsBuffer,
    TrackingEvent,
    get_post_stats,
    get_site_stats,
)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 12, 0, 0))


@pytest.fixture
def buffer(clock) -> ReadingStatsBuffer:
    return ReadingStatsBuffer(max_keys=100, clock=clock)


def _event(session: str, depth: float = 0.0, seconds: int = 10, slug: str = "tracked") -> TrackingEvent:
    return TrackingEvent(postSlug=slug, sessionId=session, scrollDepth=depth, timeOnPage=seconds)


def _row(db_session: Session, post_id: str) -> ReadingStats:
    return db_session.query(ReadingStats).filter(ReadingStats.postId == post_id).one()


class TestBuffer:

    def test_views_count_distinct_sessions(self, db_session: Session, buffer, make_post):
        post = make_post("Tracked", publish=True)
        buffer.track(_event("s1", 0.1))
        buffer.track(_event("s1", 0.3))
        buffer.track(_event("s2", 0.6))

        assert buffer.flush(db_session) == 1
        row = _row(db_session, post.id)
        assert row.views == 2
        assert row.uniqueVisitors == 2
        assert row.totalReadTime == 30
        assert row.date == date(2024, 5, 1)

    def test_completion_rate_is_running_max(self, db_session: Session, buffer, make_post):
        post = make_post("Tracked", publish=True)
        buffer.track(_event("s1", 0.9))
        buffer.track(_event("s2", 0.4))
        buffer.flush(db_session)
        assert _row(db_session, post.id).completionRate == pytest.approx(0.9)

        buffer.track(_event("s3", 0.5))
        buffer.flush(db_session)
        db_session.expire_all()
        assert _row(db_session, post.id).completionRate == pytest.approx(0.9)

        buffer.track(_event("s3", 1.0))
        buffer.flush(db_session)
        db_session.expire_all()
        assert _row(db_session, post.id).completionRate == pytest.approx(1.0)

    def test_scroll_buckets(self, db_session: Session, buffer, make_post):
        post = make_post("Tracked", publish=True)
        for depth in (0.1, 0.25, 0.5, 0.8, 1.0):
            buffer.track(_event("s1", depth))
        buffer.flush(db_session)

        row = _row(db_session, post.id)
        assert (row.scrollP25, row.scrollP50, row.scrollP75, row.scrollP100) == (4, 3, 2, 1)

    def test_session_remembered_across_flushes_same_day(self, db_session: Session, buffer, make_post):
        post = make_post("Tracked", publish=True)
        buffer.track(_event("s1"))
        buffer.flush(db_session)
        buffer.track(_event("s1"))
        buffer.flush(db_session)

        db_session.expire_all()
        row = _row(db_session, post.id)
        assert row.views == 1
        assert row.totalReadTime == 20

    def test_new_day_new_row(self, db_session: Session, buffer, clock, make_post):
        post = make_post("Tracked", publish=True)
        buffer.track(_event("s1"))
        clock.advance(days=1)
        buffer.track(_event("s1"))
        assert buffer.flush(db_session) == 2

        rows = db_session.query(ReadingStats).filter(ReadingStats.postId == post.id).order_by(ReadingStats.date).all()
        assert [(r.date, r.views) for r in rows] == [(date(2024, 5, 1), 1), (date(2024, 5, 2), 1)]

    def test_unknown_slug_skipped(self, db_session: Session, buffer):
        buffer.track(_event("s1", slug="ghost"))
        assert buffer.flush(db_session) == 0
        assert buffer.pending() == 0
        assert db_session.query(ReadingStats).count() == 0

    def test_bounded_keys_drop_new_keys(self, clock):
        small = ReadingStatsBuffer(max_keys=1, clock=clock)
        assert small.track(_event("s1", slug="first"))
        assert not small.track(_event("s1", slug="second"))
        assert small.track(_event("s2", slug="first"))
        assert small.pending() == 1
        assert small.dropped_events == 1

    def test_failed_flush_restores_buffer(self, db_session: Session, buffer, make_post, monkeypatch):
        post = make_post("Tracked", publish=True)
        buffer.track(_event("s1", 0.5))

        def broken_commit():
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(db_session, "commit", broken_commit)
        assert buffer.flush(db_session) == 0
        assert buffer.pending() == 1
        monkeypatch.undo()

        buffer.track(_event("s2", 0.2))
        assert buffer.flush(db_session) == 1
        row = _row(db_session, post.id)
        assert row.views == 2
        assert row.completionRate == pytest.approx(0.5)


class TestWorker:

    def test_flush_now_and_stop(self, db_session: Session, clock, make_post):
        post = make_post("Tracked", publish=True)
        worker = AnalyticsWorker(SessionLocal, buffer=ReadingStatsBuffer(clock=clock), interval=3600)

        async def scenario():
            worker.start()
            assert worker.running
            worker.track(_event("s1"))
            flushed_now = await worker.flush_now()
            worker.track(_event("s2"))
            flushed_on_stop = await worker.stop()
            return flushed_now, flushed_on_stop

        assert asyncio.run(scenario()) == (1, 1)
        assert not worker.running
        db_session.expire_all()
        assert _row(db_session, post.id).views == 2


class TestStatsQueries:

    def _seed(self, db_session: Session, post_id: str, day: date, views: int, seconds: int, rate: float):
        db_session.add(ReadingStats(
            postId=post_id, date=day, views=views, uniqueVisitors=views,
            totalReadTime=seconds, completionRate=rate,
        ))
        db_session.commit()

    def test_post_stats(self, db_session: Session, make_post):
        post = make_post("Stats Post", publish=True)
        today = date(2024, 5, 10)
        self._seed(db_session, post.id, today, 4, 400, 0.5)
        self._seed(db_session, post.id, today - timedelta(days=1), 6, 200, 1.0)
        self._seed(db_session, post.id, today - timedelta(days=60), 100, 100, 0.1)

        stats = get_post_stats(db_session, post.id, days=30, today=today)
        assert stats["totalViews"] == 10
        assert stats["totalUniqueVisitors"] == 10
        assert stats["avgReadTime"] == 60
        assert stats["avgCompletionRate"] == pytest.approx(0.75)
        assert [d["date"] for d in stats["dailyStats"]] == [today, today - timedelta(days=1)]

    def test_post_stats_empty(self, db_session: Session, make_post):
        post = make_post("Quiet Post", publish=True)
        stats = get_post_stats(db_session, post.id)
        assert stats == {
            "totalViews": 0,
            "totalUniqueVisitors": 0,
            "avgReadTime": 0,
            "avgCompletionRate": 0.0,
            "dailyStats": [],
        }

    def test_site_stats_top_posts(self, db_session: Session, make_post):
        popular = make_post("Popular", publish=True)
        niche = make_post("Niche", publish=True)
        today = date(2024, 5, 10)
        self._seed(db_session, popular.id, today, 30, 0, 0.0)
        self._seed(db_session, niche.id, today, 5, 0, 0.0)

        stats = get_site_stats(db_session, days=7, today=today)
        assert stats["totalViews"] == 35
        assert [(p["slug"], p["views"]) for p in stats["topPosts"]] == [("popular", 30), ("niche", 5)]
