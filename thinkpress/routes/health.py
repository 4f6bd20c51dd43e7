# 健康检查端点
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from thinkpress.core.database import get_db
import time

router = APIRouter()


@router.get("")
async def health_check(request: Request, db: Session = Depends(get_db)):
    """
    健康检查端点 - 用于负载均衡器/监控系统
    返回服务状态、数据库连接状态和阅读统计缓冲区状态
    """
    start = time.time()

    db_status = "healthy"
    db_latency_ms = 0
    try:
        db_start = time.time()
        db.execute(text("SELECT 1"))
        db_latency_ms = round((time.time() - db_start) * 1000, 2)
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"

    worker = getattr(request.app.state, "analytics", None)
    analytics = {
        "running": bool(worker and worker.running),
        "pendingKeys": worker.buffer.pending() if worker else 0,
    }

    total_latency_ms = round((time.time() - start) * 1000, 2)

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "timestamp": time.time(),
        "checks": {
            "database": {
                "status": db_status,
                "latency_ms": db_latency_ms
            },
            "analytics": analytics,
        },
        "latency_ms": total_latency_ms
    }


@router.get("/ready")
async def readiness_check(db: Session = Depends(get_db)):
    """就绪检查 - 数据库可用时返回 200"""
    try:
        db.execute(text("SELECT 1"))
        return {"ready": True}
    except SQLAlchemyError:
        raise HTTPException(status_code=503, detail="Service not ready")


@router.get("/live")
async def liveness_check():
    """存活检查 - 只要进程还在运行就返回 200"""
    return {"alive": True}
