"""
用户统计API路由
"""
from fastapi import APIRouter, Depends, HTTPException, status

from ..services.user_service import UserService
from ..services.dto import UserStats
from ..services.errors import ServiceError
from ..database import get_database
from ..utils.auth_helpers import get_current_user_id
from ..utils.logger import get_logger
from .common import to_http_exception

logger = get_logger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/stats", response_model=UserStats, status_code=status.HTTP_200_OK)
async def get_user_stats(user_id: str = Depends(get_current_user_id)):
    """
    获取当前用户的统计信息
    """
    try:
        return UserService(get_database()).get_stats(user_id)
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"获取用户统计失败: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
