"""
路由公共工具：服务层异常到HTTP状态码的映射
"""
from fastapi import HTTPException, status

from ..services.errors import (
    ServiceError,
    ValidationError,
    AuthenticationError,
    NotAuthenticatedError,
    NotFoundError,
    QuotaExceededError,
)

_STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_400_BAD_REQUEST),
    (NotAuthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (QuotaExceededError, status.HTTP_429_TOO_MANY_REQUESTS),
)


def to_http_exception(error: ServiceError) -> HTTPException:
    """将服务层异常转换为HTTPException，未列出的类型按500处理"""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.message)
