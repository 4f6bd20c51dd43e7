import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from thinkpress.core.config import settings
from thinkpress.core.database import Base, SessionLocal, engine
from thinkpress.core.exceptions import ThinkpressError
from thinkpress.services.analytics import AnalyticsWorker
from thinkpress.routes import auth, posts, ideas, threads, search, reading, health
import thinkpress.models  # noqa: F401  注册所有表

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _run_startup()
    worker: AnalyticsWorker = app.state.analytics
    if settings.ANALYTICS_ENABLE_WORKER:
        worker.start()
    yield
    # 关闭时把缓冲区里剩下的阅读统计写入数据库
    await worker.stop()


# 创建 FastAPI 应用
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# 每个进程一个阅读统计缓冲区
app.state.analytics = AnalyticsWorker(SessionLocal)


@app.exception_handler(ThinkpressError)
async def _domain_error_handler(request: Request, exc: ThinkpressError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(SQLAlchemyError)
async def _sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
    # 统一把数据库异常转换成 JSON 响应，避免未处理异常导致浏览器端出现 CORS 级别的 `Failed to fetch`
    logging.exception("数据库异常: %s", exc)
    detail = "数据库错误，请检查数据库连接与表结构"
    if os.getenv("DEBUG_DB_ERRORS", "false").lower() == "true":
        detail = f"{detail}: {exc}"
    return JSONResponse(status_code=500, content={"detail": detail})


def _run_startup() -> None:
    """应用启动时执行：创建表"""
    if not settings.AUTO_CREATE_TABLES:
        return
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        logging.exception("数据库初始化失败（无法创建表），请检查 DATABASE_URL 连接与权限: %s", exc)


# CORS 中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=settings.CORS_ALLOW_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 健康检查
@app.get("/health")
async def health_check():
    """健康检查端点"""
    return {"status": "ok", "message": "Thinkpress API is running"}


@app.get("/health/db")
async def health_check_db():
    """数据库连接检查"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok"}
    except SQLAlchemyError as exc:
        logging.exception("数据库健康检查失败: %s", exc)
        raise


# 包含路由
app.include_router(health.router, prefix="/api/health", tags=["Health"])
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(posts.router, prefix="/api/posts", tags=["Posts"])
app.include_router(ideas.router, prefix="/api/ideas", tags=["Ideas"])
app.include_router(threads.router, prefix="/api/threads", tags=["Threads"])
app.include_router(search.router, prefix="/api/search", tags=["Search"])
app.include_router(reading.router, prefix="/api/reading", tags=["Reading"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        log_level="info"
    )
