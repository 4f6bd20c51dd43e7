"""
Pytest configuration and fixtures for backend tests.
"""
import os
import sys
from typing import Generator

# 必须在导入应用之前设置：database / config 在导入时读取
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["ANALYTICS_ENABLE_WORKER"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from thinkpress.core.database import Base, SessionLocal, engine, get_db
from thinkpress.core.security import create_access_token, get_password_hash
from thinkpress.models import User
from thinkpress.services import posts as post_service
from thinkpress.services.analytics import AnalyticsWorker
from main import app


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> TestClient:
    """Create a test client with overridden database dependency."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.analytics = AnalyticsWorker(SessionLocal)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(db_session: Session) -> User:
    user = User(
        username="admin",
        password=get_password_hash("Password123"),
        nickname="Admin",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    """Generate authentication headers for the seeded admin."""
    token = create_access_token(data={"sub": admin_user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_post(db_session: Session):
    """创建文章的工厂；publish=True 时同时发布"""
    def _make(title: str, content: str = "Some content here.", idea_ids=None, publish: bool = False):
        post = post_service.create_post(db_session, title=title, content=content, idea_ids=idea_ids)
        if publish:
            post = post_service.publish_post(db_session, post.id)
        return post
    return _make
