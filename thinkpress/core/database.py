from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.engine.url import make_url
from sqlalchemy.pool import StaticPool
from typing import Generator
from datetime import datetime, timezone
import os
from dotenv import load_dotenv

def _default_env_file() -> str:
    # 本地开发优先读取 SQLite 配置，避免依赖外部数据库
    for candidate in (".env.sqlite", ".env"):
        if os.path.exists(candidate):
            return candidate
    return ".env"


ENV_FILE = os.getenv("ENV_FILE") or _default_env_file()
load_dotenv(ENV_FILE)

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL 未配置，请在环境变量或 .env 中设置")

_url = make_url(DATABASE_URL)
_engine_kwargs: dict = {"echo": False, "pool_pre_ping": True}

if _url.drivername.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
    # 内存库：所有会话共享同一连接，否则每个连接都是一个空库
    if _url.database in (None, "", ":memory:"):
        _engine_kwargs["poolclass"] = StaticPool
else:
    _engine_kwargs.update({"pool_size": 10, "max_overflow": 20})

engine = create_engine(DATABASE_URL, **_engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """数据库会话依赖注入"""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()



def utc_now() -> datetime:
    """返回 UTC 时间（不带时区，SQLite 读回来同样是 naive）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
