from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from thinkpress.core.database import get_db
from thinkpress.core.security import get_current_user
from thinkpress.models import User
from thinkpress.schemas.reading import FlushResponse, PostStatsResponse, SiteStatsResponse, TrackRequest
from thinkpress.services import analytics as analytics_service
from thinkpress.services.analytics import AnalyticsWorker, TrackingEvent
from thinkpress.services.posts import get_post_by_id

router = APIRouter()


def get_analytics_worker(request: Request) -> AnalyticsWorker:
    worker = getattr(request.app.state, "analytics", None)
    if worker is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="阅读统计未启用")
    return worker


@router.post("/track", status_code=status.HTTP_202_ACCEPTED)
async def track_reading(
    payload: TrackRequest,
    worker: AnalyticsWorker = Depends(get_analytics_worker),
):
    """阅读进度上报，只进入缓冲区，定期落库"""
    accepted = worker.track(TrackingEvent(**payload.model_dump()))
    return {"accepted": accepted}


@router.get("/stats/site", response_model=SiteStatsResponse)
async def get_site_stats(
    days: int = Query(default=30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return analytics_service.get_site_stats(db, days)


@router.get("/stats/{post_id}", response_model=PostStatsResponse)
async def get_post_stats(
    post_id: str,
    days: int = Query(default=30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    get_post_by_id(db, post_id)
    return analytics_service.get_post_stats(db, post_id, days)


@router.post("/flush", response_model=FlushResponse)
async def flush_reading_stats(
    db: Session = Depends(get_db),
    worker: AnalyticsWorker = Depends(get_analytics_worker),
    current_user: User = Depends(get_current_user),
):
    """立即把缓冲区写入数据库"""
    return {"flushed": worker.buffer.flush(db)}
