"""
数据源模型
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from .base import Base, TimestampMixin


class DataSource(Base, TimestampMixin):
    """数据源表"""
    __tablename__ = "data_sources"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)  # shopify, google_analytics, facebook_ads, ...
    is_connected = Column(Boolean, default=False, nullable=False)
    encrypted_oauth_tokens = Column(Text, nullable=True)  # 加密后的JSON
    last_sync_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<DataSource(id={self.id}, name={self.name}, type={self.type})>"
