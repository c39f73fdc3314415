"""
用户模型
"""
from sqlalchemy import Column, String, Text, Integer, DateTime
from .base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """用户表"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    username = Column(String(255), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(Text, nullable=False)  # bcrypt哈希
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    subscription_tier = Column(String(20), nullable=False, default="free")  # free, premium, enterprise
    stripe_customer_id = Column(String(255), nullable=True)
    stripe_subscription_id = Column(String(255), nullable=True)
    api_usage = Column(Integer, nullable=False, default=0)
    api_limit = Column(Integer, nullable=True, default=100)  # NULL表示不限
    usage_period_start = Column(DateTime, nullable=True)  # 当前计数周期（自然月）起点

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, tier={self.subscription_tier})>"
