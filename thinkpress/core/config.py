from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Optional
import os
import json


class Settings(BaseSettings):
    """应用配置"""

    # API 配置
    API_TITLE: str = "Thinkpress API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Personal publishing platform: posts, ideas, thought threads and backlinks"

    # JWT 配置（仅后台管理使用）
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    # Token 有效期：默认 7 天（10080 分钟）
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080

    # 数据库配置
    DATABASE_URL: str
    # 启动时自动建表（生产环境可关闭，改用迁移）
    AUTO_CREATE_TABLES: bool = True

    # 日志级别
    LOG_LEVEL: str = "INFO"

    # 内容相关
    EXCERPT_LENGTH: int = 160
    SLUG_MAX_LENGTH: int = 100
    WORDS_PER_MINUTE: int = 200

    # 分页
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 50

    # 阅读统计缓冲区
    # - ANALYTICS_FLUSH_INTERVAL_SECONDS: 定时落库间隔
    # - ANALYTICS_BUFFER_MAX_KEYS: 缓冲区最多保留的 (文章, 日期) 键数，超出后丢弃新键
    # - ANALYTICS_ENABLE_WORKER: 是否在应用启动时开启后台落库任务（测试中关闭）
    ANALYTICS_FLUSH_INTERVAL_SECONDS: float = 10.0
    ANALYTICS_BUFFER_MAX_KEYS: int = 5000
    ANALYTICS_ENABLE_WORKER: bool = True

    # CORS 配置
    # 支持通过环境变量 CORS_ORIGINS 覆盖：
    # - JSON 数组：["https://a.com","https://b.com"]
    # - 逗号分隔：https://a.com,https://b.com
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    CORS_ALLOW_ORIGIN_REGEX: Optional[str] = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        if v is None:
            return v
        if isinstance(v, str):
            raw = v.strip()
            if not raw:
                return []
            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                except json.JSONDecodeError:
                    parsed = None
                if isinstance(parsed, list):
                    return [str(item).strip() for item in parsed if str(item).strip()]
            return [item.strip() for item in raw.split(",") if item.strip()]
        return v

    @field_validator("CORS_ALLOW_ORIGIN_REGEX", mode="before")
    @classmethod
    def _normalize_cors_regex(cls, v):
        if v is None:
            return None
        if isinstance(v, str):
            raw = v.strip()
            return raw or None
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    @staticmethod
    def _default_env_file() -> str:
        env_file = os.getenv("ENV_FILE")
        if env_file:
            return env_file
        for candidate in (".env.sqlite", ".env"):
            if os.path.exists(candidate):
                return candidate
        return ".env"

    model_config = SettingsConfigDict(env_file=_default_env_file.__func__(), extra="ignore")


settings = Settings()
