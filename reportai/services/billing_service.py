"""
订阅计费服务（Stripe）
"""
import os
from typing import Any, Dict, Optional

import stripe

from ..models.user import User
from ..utils.logger import get_logger
from .user_service import UserService

logger = get_logger(__name__)


class BillingNotConfiguredError(Exception):
    """未配置STRIPE_SECRET_KEY"""


def _client_secret(subscription: Any) -> Optional[str]:
    """取 latest_invoice.payment_intent.client_secret，缺任一层时返回None"""
    try:
        invoice = subscription["latest_invoice"]
        payment_intent = invoice["payment_intent"] if invoice else None
        return payment_intent["client_secret"] if payment_intent else None
    except (KeyError, TypeError):
        return None


class BillingService:
    """订阅服务类"""

    def __init__(self, user_service: UserService, api_key: Optional[str] = None, price_id: Optional[str] = None):
        self.users = user_service
        self.api_key = api_key or os.getenv("STRIPE_SECRET_KEY")
        self.price_id = price_id or os.getenv("STRIPE_PRICE_ID_PREMIUM", "price_premium")

    def _ensure_configured(self) -> None:
        if not self.api_key:
            raise BillingNotConfiguredError("Stripe is not configured")
        stripe.api_key = self.api_key

    def create_subscription(self, user: User) -> Dict[str, Any]:
        """
        为用户创建高级版订阅

        已有订阅时直接返回该订阅；否则先创建Stripe客户再创建订阅，
        两步各自落库，订阅创建失败时客户ID仍会保留。

        Returns:
            {"subscription_id": ..., "client_secret": ...}
        """
        self._ensure_configured()

        if user.stripe_subscription_id:
            subscription = stripe.Subscription.retrieve(
                user.stripe_subscription_id,
                expand=["latest_invoice.payment_intent"],
            )
            logger.info(f"返回已有订阅: user={user.id}, subscription={subscription['id']}")
            return {"subscription_id": subscription["id"], "client_secret": _client_secret(subscription)}

        if not user.email:
            raise ValueError("No user email on file")

        full_name = " ".join(part for part in (user.first_name, user.last_name) if part)
        customer = stripe.Customer.create(email=user.email, name=full_name or user.username)
        self.users.update_stripe_info(user.id, customer["id"])

        subscription = stripe.Subscription.create(
            customer=customer["id"],
            items=[{"price": self.price_id}],
            payment_behavior="default_incomplete",
            expand=["latest_invoice.payment_intent"],
        )
        self.users.update_stripe_info(user.id, customer["id"], subscription["id"])

        logger.info(f"订阅创建成功: user={user.id}, customer={customer['id']}, subscription={subscription['id']}")
        return {"subscription_id": subscription["id"], "client_secret": _client_secret(subscription)}
