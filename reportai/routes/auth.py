"""
认证相关API路由
"""
from typing import Optional
from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel, Field

from ..services.auth_service import AuthService
from ..services.user_service import serialize_user
from ..services.errors import ServiceError
from ..database import get_database
from ..utils.auth_helpers import get_optional_user_id
from ..utils.logger import get_logger
from .common import to_http_exception

logger = get_logger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


# ============ Request/Response Models ============

class RegisterRequest(BaseModel):
    """注册请求"""
    username: str = Field(..., min_length=1, description="用户名")
    email: str = Field(..., min_length=3, description="邮箱")
    password: str = Field(..., min_length=1, description="密码")
    first_name: Optional[str] = Field(None, description="名")
    last_name: Optional[str] = Field(None, description="姓")


class LoginRequest(BaseModel):
    """登录请求"""
    email: str
    password: str


class UserResponse(BaseModel):
    """用户信息"""
    id: str
    username: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    subscription_tier: str
    api_usage: int
    api_limit: Optional[int]


class AuthResponse(BaseModel):
    user: UserResponse


# ============ API Endpoints ============

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_200_OK)
async def register(payload: RegisterRequest, request: Request):
    """注册并自动登录"""
    try:
        logger.info(f"收到注册请求: email={payload.email}")

        user = AuthService(get_database()).register(
            username=payload.username,
            email=payload.email,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
        request.session["user_id"] = user.id
        return AuthResponse(user=UserResponse(**serialize_user(user)))

    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"注册失败: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.post("/login", response_model=AuthResponse, status_code=status.HTTP_200_OK)
async def login(payload: LoginRequest, request: Request):
    """邮箱密码登录"""
    try:
        user = AuthService(get_database()).authenticate(payload.email, payload.password)
        request.session["user_id"] = user.id
        return AuthResponse(user=UserResponse(**serialize_user(user)))

    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"登录失败: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(request: Request):
    request.session.clear()
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=AuthResponse, status_code=status.HTTP_200_OK)
async def me(request: Request):
    """当前登录用户"""
    user_id = get_optional_user_id(request)
    user = AuthService(get_database()).get_user(user_id) if user_id else None

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return AuthResponse(user=UserResponse(**serialize_user(user)))
