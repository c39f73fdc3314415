"""
数据库模型包
"""
from .base import Base
from .user import User
from .data_source import DataSource
from .report import Report, ReportExport

__all__ = [
    "Base",
    "User",
    "DataSource",
    "Report",
    "ReportExport",
]
