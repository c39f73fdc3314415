"""
SQLAlchemy基础配置
"""
from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, DateTime

from ..utils.datetime_helper import utc_now

Base = declarative_base()


class TimestampMixin:
    """时间戳混入类（UTC，不带时区）"""
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)
