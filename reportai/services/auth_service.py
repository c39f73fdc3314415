"""
认证服务
注册、登录校验和密码哈希
"""
import uuid
from typing import Optional

import bcrypt

from ..database import Database
from ..models.user import User
from ..utils.logger import get_logger
from .errors import AuthenticationError, ValidationError
from .user_service import TIER_LIMITS

logger = get_logger(__name__)


def hash_password(password: str) -> str:
    """使用bcrypt生成密码哈希"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """校验密码，哈希格式不合法时视为不匹配"""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


class AuthService:
    """认证服务类"""

    def __init__(self, database: Database):
        self.db = database

    def register(
        self,
        username: str,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """
        注册新用户

        Raises:
            ValidationError: 必填字段为空，或邮箱/用户名已被占用
        """
        if not username or not email or not password:
            raise ValidationError("Username, email and password are required")

        email = email.strip().lower()

        with self.db.get_session() as session:
            existing = session.query(User).filter(
                (User.email == email) | (User.username == username)
            ).first()
            if existing:
                raise ValidationError("User already exists")

            user = User(
                id=str(uuid.uuid4()),
                username=username,
                email=email,
                password=hash_password(password),
                first_name=first_name,
                last_name=last_name,
                subscription_tier="free",
                api_usage=0,
                api_limit=TIER_LIMITS["free"],
            )
            session.add(user)

        logger.info(f"用户注册成功: id={user.id}, email={email}")
        return user

    def authenticate(self, email: str, password: str) -> User:
        """
        校验邮箱和密码

        Raises:
            AuthenticationError: 用户不存在或密码错误（统一提示，避免泄露账号是否存在）
        """
        email = (email or "").strip().lower()
        with self.db.get_session() as session:
            user = session.query(User).filter(User.email == email).first()

        if not user or not verify_password(password or "", user.password):
            logger.info(f"登录失败: email={email}")
            raise AuthenticationError("Invalid credentials")

        logger.info(f"登录成功: id={user.id}")
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        with self.db.get_session() as session:
            return session.query(User).filter(User.id == user_id).first()
