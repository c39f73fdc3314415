"""
OAuth服务
生成各数据平台的授权地址，并用授权码换取访问令牌
"""
import os
from typing import Dict, Any
from urllib.parse import urlencode

import httpx

from ..utils.logger import get_logger, log_oauth_error
from .errors import ValidationError

logger = get_logger(__name__)


OAUTH_CONFIGS: Dict[str, Dict[str, str]] = {
    "shopify": {
        "authorization_url": "https://accounts.shopify.com/oauth/authorize",
        "token_url": "https://accounts.shopify.com/oauth/token",
        "scope": "read_orders,read_products,read_analytics",
    },
    "google": {
        "authorization_url": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "scope": "https://www.googleapis.com/auth/analytics.readonly",
    },
    "facebook": {
        "authorization_url": "https://www.facebook.com/v18.0/dialog/oauth",
        "token_url": "https://graph.facebook.com/v18.0/oauth/access_token",
        "scope": "ads_read,pages_read_engagement",
    },
}


class OAuthError(Exception):
    """令牌交换失败"""


def get_provider_config(provider: str) -> Dict[str, str]:
    config = OAUTH_CONFIGS.get(provider)
    if not config:
        raise ValidationError(f"OAuth configuration not found for provider: {provider}")
    return config


def _client_credentials(provider: str) -> Dict[str, str]:
    prefix = provider.upper()
    return {
        "client_id": os.getenv(f"{prefix}_CLIENT_ID", ""),
        "client_secret": os.getenv(f"{prefix}_CLIENT_SECRET", ""),
    }


def build_state(user_id: str, provider: str) -> str:
    return f"{user_id}:{provider}"


def parse_state(state: str) -> str:
    """从state中取出用户ID"""
    user_id, _, _ = state.partition(":")
    if not user_id:
        raise ValidationError("Missing or invalid authorization code or state")
    return user_id


def generate_oauth_url(provider: str, user_id: str, redirect_url: str) -> str:
    """
    生成授权跳转地址

    Raises:
        ValidationError: 不支持的提供方
    """
    config = get_provider_config(provider)
    params = {
        "client_id": _client_credentials(provider)["client_id"],
        "redirect_uri": redirect_url,
        "scope": config["scope"],
        "response_type": "code",
        "state": build_state(user_id, provider),
    }
    return f"{config['authorization_url']}?{urlencode(params)}"


async def exchange_code_for_tokens(provider: str, code: str, redirect_url: str = None) -> Dict[str, Any]:
    """
    用授权码换取令牌

    Raises:
        ValidationError: 不支持的提供方
        OAuthError: 提供方返回非2xx
    """
    config = get_provider_config(provider)
    form = {
        **_client_credentials(provider),
        "code": code,
        "grant_type": "authorization_code",
    }
    if redirect_url:
        form["redirect_uri"] = redirect_url

    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(config["token_url"], data=form)

        if response.status_code >= 400:
            raise OAuthError(
                f"Failed to exchange code for tokens: {response.reason_phrase} - {response.text}"
            )

        logger.info(f"OAuth令牌交换成功: provider={provider}")
        return response.json()
    except Exception as e:
        log_oauth_error(logger, provider, e)
        raise
