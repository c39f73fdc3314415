"""
报表模型
"""
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey
from .base import Base, TimestampMixin
from ..utils.datetime_helper import utc_now


class Report(Base, TimestampMixin):
    """报表表"""
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    data_source_id = Column(String(36), ForeignKey("data_sources.id"), nullable=True)
    components = Column(Text, nullable=False, default="[]")  # JSON array: 章节或画布组件
    generated_content = Column(Text, nullable=True)  # JSON: AI洞察等
    status = Column(String(20), nullable=False, default="draft")  # draft, generated, published
    ai_prompt = Column(Text, nullable=True)
    page_count = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Report(id={self.id}, title={self.title}, status={self.status})>"


class ReportExport(Base):
    """报表导出记录表"""
    __tablename__ = "report_exports"

    id = Column(String(36), primary_key=True)
    report_id = Column(String(36), ForeignKey("reports.id"), nullable=False, index=True)
    format = Column(String(20), nullable=False)  # 目前仅支持 json
    download_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    def __repr__(self):
        return f"<ReportExport(report_id={self.report_id}, format={self.format}, downloads={self.download_count})>"
