"""
OAuth集成API路由
"""
import os
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from ..services import oauth_service
from ..services.data_source_service import DataSourceService
from ..services.errors import ServiceError, ValidationError
from ..database import get_database
from ..utils.auth_helpers import get_current_user_id
from ..utils.logger import get_logger
from .common import to_http_exception

logger = get_logger(__name__)
router = APIRouter(prefix="/api/oauth", tags=["oauth"])


def _callback_url(request: Request, provider: str) -> str:
    return str(request.url_for("oauth_callback", provider=provider))


@router.get("/{provider}/auth")
async def start_oauth(provider: str, request: Request, user_id: str = Depends(get_current_user_id)):
    """跳转到提供方的授权页面"""
    try:
        auth_url = oauth_service.generate_oauth_url(provider, user_id, _callback_url(request, provider))
        logger.info(f"发起OAuth授权: user={user_id}, provider={provider}")
        return RedirectResponse(auth_url, status_code=status.HTTP_302_FOUND)
    except ServiceError as e:
        raise to_http_exception(e)


@router.get("/{provider}/callback", name="oauth_callback")
async def oauth_callback(
    provider: str,
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
):
    """
    授权回调

    用授权码换取令牌，把用户该类型的数据源标记为已连接，然后跳回前端
    """
    try:
        if not code or not state:
            raise ValidationError("Missing or invalid authorization code or state")

        user_id = oauth_service.parse_state(state)
        tokens = await oauth_service.exchange_code_for_tokens(provider, code, _callback_url(request, provider))

        DataSourceService(get_database()).connect_oauth(user_id, provider, tokens)

        frontend_url = os.getenv("FRONTEND_URL", "http://localhost:5000")
        return RedirectResponse(
            f"{frontend_url}/data-sources?connected={provider}",
            status_code=status.HTTP_302_FOUND
        )
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"OAuth回调处理失败: provider={provider}, error={str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
