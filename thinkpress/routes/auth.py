from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, field_validator
import logging
import re
from thinkpress.core.database import get_db, utc_now
from thinkpress.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    get_current_user,
)
from thinkpress.models import User

router = APIRouter()
logger = logging.getLogger(__name__)

# 验证规则常量
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 64
NICKNAME_MAX_LENGTH = 30

# 用户名只允许字母、数字、下划线
USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_]+$')


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('用户名不能为空')
        return v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError('密码不能为空')
        return v


class RegisterRequest(BaseModel):
    username: str
    password: str
    nickname: str | None = None

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < USERNAME_MIN_LENGTH:
            raise ValueError(f'用户名长度不能少于 {USERNAME_MIN_LENGTH} 个字符')
        if len(v) > USERNAME_MAX_LENGTH:
            raise ValueError(f'用户名长度不能超过 {USERNAME_MAX_LENGTH} 个字符')
        if not USERNAME_PATTERN.match(v):
            raise ValueError('用户名只能包含字母、数字和下划线')
        return v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < PASSWORD_MIN_LENGTH:
            raise ValueError(f'密码长度不能少于 {PASSWORD_MIN_LENGTH} 个字符')
        if len(v) > PASSWORD_MAX_LENGTH:
            raise ValueError(f'密码长度不能超过 {PASSWORD_MAX_LENGTH} 个字符')
        return v

    @field_validator('nickname')
    @classmethod
    def validate_nickname(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) > NICKNAME_MAX_LENGTH:
            raise ValueError(f'昵称长度不能超过 {NICKNAME_MAX_LENGTH} 个字符')
        return v or None


class AuthResponse(BaseModel):
    id: str
    username: str
    nickname: str | None = None
    token: str


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
):
    """管理员登录"""
    user = db.query(User).filter(User.username == request.username).first()

    if not user or not verify_password(request.password, user.password):
        logger.info("登录失败: 用户名或密码错误 (%s)", request.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="用户名或密码错误",
        )

    user.lastLoginAt = utc_now()
    db.commit()

    token = create_access_token({"sub": user.id})
    logger.debug("登录成功: userId=%s", user.id)

    return AuthResponse(
        id=user.id,
        username=user.username,
        nickname=user.nickname,
        token=token,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
):
    """注册管理员：个人站点只允许创建第一个账号"""
    if db.query(User.id).first():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="管理员账号已存在，不再开放注册",
        )

    user = User(
        username=request.username,
        password=get_password_hash(request.password),
        nickname=request.nickname or request.username,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("已创建管理员账号: %s", user.username)

    token = create_access_token({"sub": user.id})

    return AuthResponse(
        id=user.id,
        username=user.username,
        nickname=user.nickname,
        token=token,
    )


@router.get("/me")
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
):
    """获取当前登录用户信息"""
    return {
        "data": {
            "id": current_user.id,
            "username": current_user.username,
            "nickname": current_user.nickname,
        }
    }
