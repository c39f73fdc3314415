"""
请求认证辅助函数

从 request.state 中读取 SessionUserMiddleware 写入的用户ID
"""
from typing import Optional

from fastapi import HTTPException, Request, status


def get_optional_user_id(request: Request) -> Optional[str]:
    return getattr(request.state, "user_id", None)


def get_current_user_id(request: Request) -> str:
    """
    FastAPI依赖：要求已登录

    Raises:
        HTTPException: 401 未登录
    """
    user_id = get_optional_user_id(request)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return user_id
