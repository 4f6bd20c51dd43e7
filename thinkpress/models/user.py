from sqlalchemy import Column, String, DateTime
from thinkpress.core.database import Base, utc_now
import uuid


class User(Base):
    """后台管理账号（个人站点，只允许注册第一个账号）"""
    __tablename__ = "user"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    nickname = Column(String(255), nullable=True)
    lastLoginAt = Column(DateTime, nullable=True)
    createdAt = Column(DateTime, default=utc_now, nullable=False)
    updatedAt = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f"<User {self.username}>"
