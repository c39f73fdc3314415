"""
订阅计费API路由
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ..services.auth_service import AuthService
from ..services.billing_service import BillingService
from ..services.user_service import UserService
from ..database import get_database
from ..utils.auth_helpers import get_current_user_id
from ..utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["billing"])


class SubscriptionResponse(BaseModel):
    subscription_id: str
    client_secret: Optional[str]


@router.post("/create-subscription", response_model=SubscriptionResponse, status_code=status.HTTP_200_OK)
async def create_subscription(user_id: str = Depends(get_current_user_id)):
    """
    创建（或返回已有的）高级版订阅
    """
    db = get_database()
    user = AuthService(db).get_user(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        result = BillingService(UserService(db)).create_subscription(user)
        return SubscriptionResponse(**result)
    except Exception as e:
        logger.error(f"创建订阅失败: user={user_id}, error={str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
