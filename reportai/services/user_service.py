"""
用户服务
API额度、订阅档位和统计信息
"""
from typing import Optional, Dict, Any

from sqlalchemy import func

from ..database import Database
from ..models.user import User
from ..models.data_source import DataSource
from ..models.report import Report, ReportExport
from ..utils.datetime_helper import utc_now, month_start
from ..utils.logger import get_logger
from .dto import UserStats
from .errors import NotAuthenticatedError, QuotaExceededError

logger = get_logger(__name__)

# 各档位每月AI请求上限，None表示不限
TIER_LIMITS: Dict[str, Optional[int]] = {
    "free": 100,
    "premium": 10000,
    "enterprise": None,
}


def serialize_user(user: User) -> Dict[str, Any]:
    """用户信息（不含密码哈希）"""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "subscription_tier": user.subscription_tier,
        "api_usage": user.api_usage or 0,
        "api_limit": user.api_limit,
    }


class UserService:
    """用户服务类"""

    def __init__(self, database: Database):
        self.db = database

    def _get(self, session, user_id: str) -> User:
        user = session.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotAuthenticatedError("Not authenticated")
        return user

    def _roll_usage_period(self, user: User) -> None:
        # 进入新的自然月时清零计数
        current = month_start(utc_now())
        if user.usage_period_start is None or user.usage_period_start < current:
            if user.usage_period_start is not None:
                logger.info(f"用户额度周期重置: id={user.id}, 上周期用量={user.api_usage}")
                user.api_usage = 0
            user.usage_period_start = current

    def check_quota(self, user_id: str) -> User:
        """
        在发起AI请求前检查额度

        读取与后续的计数递增不是原子操作，同一用户并发请求时可能略微超出上限。

        Raises:
            NotAuthenticatedError: 会话中的用户已不存在
            QuotaExceededError: 当前用量已达到上限
        """
        with self.db.get_session() as session:
            user = self._get(session, user_id)
            self._roll_usage_period(user)
            usage = user.api_usage or 0

        if user.api_limit is not None and usage >= user.api_limit:
            logger.warning(f"API额度已用尽: user={user_id}, usage={usage}, limit={user.api_limit}")
            raise QuotaExceededError("API usage limit exceeded")

        return user

    def increment_usage(self, user_id: str) -> int:
        """用量加一，返回新的用量"""
        with self.db.get_session() as session:
            user = self._get(session, user_id)
            self._roll_usage_period(user)
            user.api_usage = (user.api_usage or 0) + 1
            usage = user.api_usage

        logger.debug(f"API用量更新: user={user_id}, usage={usage}")
        return usage

    def update_stripe_info(
        self,
        user_id: str,
        stripe_customer_id: str,
        stripe_subscription_id: Optional[str] = None,
    ) -> User:
        with self.db.get_session() as session:
            user = self._get(session, user_id)
            user.stripe_customer_id = stripe_customer_id
            user.stripe_subscription_id = stripe_subscription_id
        return user

    def get_stats(self, user_id: str) -> UserStats:
        """报表数、已连接数据源数、API请求数、下载次数"""
        with self.db.get_session() as session:
            user = self._get(session, user_id)

            reports_generated = session.query(func.count(Report.id)).filter(
                Report.user_id == user_id
            ).scalar()

            data_sources_connected = session.query(func.count(DataSource.id)).filter(
                DataSource.user_id == user_id,
                DataSource.is_connected.is_(True)
            ).scalar()

            downloads = session.query(func.coalesce(func.sum(ReportExport.download_count), 0)).join(
                Report, Report.id == ReportExport.report_id
            ).filter(Report.user_id == user_id).scalar()

            return UserStats(
                reports_generated=reports_generated or 0,
                data_sources_connected=data_sources_connected or 0,
                api_requests=user.api_usage or 0,
                downloads_count=int(downloads or 0),
            )
