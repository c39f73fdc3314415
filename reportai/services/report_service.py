"""
报表服务
整合LLM、用户额度和数据源，实现AI生成、画布保存、报表CRUD与下载
"""
import json
import re
import uuid
from typing import Dict, List, Any, Optional, Tuple

from .llm_service import LLMService
from .user_service import UserService
from .data_source_service import DataSourceService
from .canvas import ReportCanvas
from .dto import ReportStructure, REPORT_STATUSES
from .errors import NotFoundError, ValidationError
from ..database import Database, get_database
from ..models.report import Report, ReportExport
from ..utils.datetime_helper import to_iso_string
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DATA_SOURCE_TYPE = "general"
RECENT_REPORTS_LIMIT = 5


def serialize_report(report: Report) -> Dict[str, Any]:
    """报表转为API响应字典"""
    generated = json.loads(report.generated_content) if report.generated_content else None
    return {
        "id": report.id,
        "user_id": report.user_id,
        "title": report.title,
        "description": report.description,
        "data_source_id": report.data_source_id,
        "components": json.loads(report.components or "[]"),
        "generated_content": generated,
        "status": report.status,
        "ai_prompt": report.ai_prompt,
        "page_count": report.page_count,
        "created_at": to_iso_string(report.created_at),
        "updated_at": to_iso_string(report.updated_at),
    }


def download_filename(title: str) -> str:
    return f"{re.sub(r'[^a-zA-Z0-9]', '_', title)}_report.json"


class ReportService:
    """报表服务类"""

    def __init__(
        self,
        database: Database,
        llm_service: LLMService,
        user_service: Optional[UserService] = None,
        data_source_service: Optional[DataSourceService] = None,
    ):
        """
        初始化报表服务

        Args:
            database: 数据库实例
            llm_service: LLM服务实例
            user_service: 用户服务（额度检查），默认基于同一数据库创建
            data_source_service: 数据源服务，默认基于同一数据库创建
        """
        self.db = database
        self.llm = llm_service
        self.users = user_service or UserService(database)
        self.data_sources = data_source_service or DataSourceService(database)

    # ============ AI生成 ============

    async def generate_report(
        self,
        user_id: str,
        ai_prompt: str,
        data_source_id: Optional[str] = None,
        model: Optional[str] = None,
    ) -> Tuple[Report, ReportStructure]:
        """
        根据自然语言需求生成报表

        流程：
        1. 校验需求非空
        2. 检查API额度（在任何模型调用之前）
        3. 解析数据源类型
        4. 调用模型生成报表结构
        5. 保存为 generated 状态的报表，页数等于章节数
        6. 用量加一

        Raises:
            ValidationError: 需求为空
            NotAuthenticatedError: 会话中的用户已不存在
            QuotaExceededError: 额度已用尽
            NotFoundError: 数据源不存在或不属于该用户
            LLMServiceError: 生成失败
        """
        if not ai_prompt or not ai_prompt.strip():
            raise ValidationError("AI prompt is required")

        self.users.check_quota(user_id)

        data_source_type = DEFAULT_DATA_SOURCE_TYPE
        if data_source_id:
            data_source = self.data_sources.get_data_source(user_id, data_source_id)
            data_source_type = data_source.type or DEFAULT_DATA_SOURCE_TYPE

        structure = await self.llm.generate_report_structure(ai_prompt, data_source_type, model=model)
        sections = [section.model_dump(mode="json", exclude_none=True) for section in structure.sections]

        report = Report(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=structure.title,
            description=f"Generated from: {ai_prompt}",
            data_source_id=data_source_id or None,
            components=json.dumps(sections, ensure_ascii=False),
            generated_content=json.dumps({"insights": structure.insights}, ensure_ascii=False),
            status="generated",
            ai_prompt=ai_prompt,
            page_count=len(sections),
        )
        with self.db.get_session() as session:
            session.add(report)

        self.users.increment_usage(user_id)

        logger.info(f"AI报表生成成功: id={report.id}, sections={report.page_count}")
        return report, structure

    async def generate_section_content(
        self,
        user_id: str,
        report_id: str,
        section_id: str,
        data: Any = None,
    ) -> Report:
        """
        为报表中的某个章节生成正文并保存

        同样计入API额度
        """
        report = self.get_report(user_id, report_id)
        sections = json.loads(report.components or "[]")
        section = next((s for s in sections if isinstance(s, dict) and s.get("id") == section_id), None)
        if section is None:
            raise NotFoundError("Section not found")

        self.users.check_quota(user_id)

        section["content"] = await self.llm.generate_section_content(section, data)

        with self.db.get_session() as session:
            stored = session.query(Report).filter(Report.id == report_id).first()
            stored.components = json.dumps(sections, ensure_ascii=False)
            report = stored

        self.users.increment_usage(user_id)
        logger.info(f"章节内容生成成功: report={report_id}, section={section_id}")
        return report

    async def generate_insights(self, user_id: str, report_id: str, data: Any) -> Report:
        """
        基于数据为报表重新生成洞察，覆盖 generated_content 中的 insights

        模型失败时洞察为空列表，但仍计入额度
        """
        report = self.get_report(user_id, report_id)
        self.users.check_quota(user_id)

        insights = await self.llm.generate_report_insights(data, report.title)

        with self.db.get_session() as session:
            stored = session.query(Report).filter(Report.id == report_id).first()
            content = json.loads(stored.generated_content) if stored.generated_content else {}
            content["insights"] = insights
            stored.generated_content = json.dumps(content, ensure_ascii=False)
            report = stored

        self.users.increment_usage(user_id)
        logger.info(f"报表洞察生成完成: report={report_id}, insights={len(insights)}")
        return report

    # ============ 画布 ============

    def save_canvas(
        self,
        user_id: str,
        title: Optional[str],
        description: Optional[str],
        components: Any,
        data_source_id: Optional[str] = None,
    ) -> Report:
        """
        将画布组件保存为新的草稿报表

        Raises:
            ValidationError: 标题为空、组件不是列表、组件为空或结构不合法
            NotFoundError: 关联的数据源不存在
        """
        if not title or not title.strip():
            raise ValidationError("Report title is required")

        canvas = ReportCanvas.from_payload(components)
        payload = canvas.to_report_payload(title, description)

        if data_source_id:
            self.data_sources.get_data_source(user_id, data_source_id)

        report = Report(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=payload["title"],
            description=payload["description"],
            data_source_id=data_source_id or None,
            components=json.dumps(payload["components"], ensure_ascii=False),
            status=payload["status"],
            page_count=payload["page_count"],
        )
        with self.db.get_session() as session:
            session.add(report)

        logger.info(f"画布报表保存成功: id={report.id}, components={len(canvas)}")
        return report

    # ============ CRUD ============

    def list_reports(self, user_id: str, limit: Optional[int] = None) -> List[Report]:
        with self.db.get_session() as session:
            query = session.query(Report).filter(
                Report.user_id == user_id
            ).order_by(Report.created_at.desc())
            if limit:
                query = query.limit(limit)
            return query.all()

    def recent_reports(self, user_id: str, limit: int = RECENT_REPORTS_LIMIT) -> List[Report]:
        return self.list_reports(user_id, limit=limit)

    def get_report(self, user_id: str, report_id: str) -> Report:
        """
        获取报表

        Raises:
            NotFoundError: 不存在或不属于该用户
        """
        with self.db.get_session() as session:
            report = session.query(Report).filter(Report.id == report_id).first()

        if not report or report.user_id != user_id:
            raise NotFoundError("Report not found")
        return report

    def update_report(
        self,
        user_id: str,
        report_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Report:
        """
        更新标题、描述或发布报表

        状态只能保持不变或改为 published，generated/draft 反映报表来源，不能手动设置
        """
        self.get_report(user_id, report_id)

        if title is not None and not title.strip():
            raise ValidationError("Report title is required")
        if status is not None and status not in REPORT_STATUSES:
            raise ValidationError(f"Unknown report status: {status}")

        with self.db.get_session() as session:
            report = session.query(Report).filter(Report.id == report_id).first()

            if status is not None and status != report.status and status != "published":
                raise ValidationError(f"Cannot change report status to {status}")

            if title is not None:
                report.title = title
            if description is not None:
                report.description = description
            if status is not None:
                report.status = status

        logger.info(f"报表更新成功: id={report_id}")
        return report

    def delete_report(self, user_id: str, report_id: str) -> None:
        self.get_report(user_id, report_id)
        with self.db.get_session() as session:
            session.query(ReportExport).filter(ReportExport.report_id == report_id).delete()
            session.query(Report).filter(Report.id == report_id).delete()
        logger.info(f"报表删除成功: id={report_id}")

    # ============ 下载 ============

    def build_download(self, user_id: str, report_id: str) -> Tuple[str, Dict[str, Any]]:
        """
        生成JSON下载内容并累计下载次数

        Returns:
            (文件名, 下载内容)
        """
        report = self.get_report(user_id, report_id)

        with self.db.get_session() as session:
            export = session.query(ReportExport).filter(
                ReportExport.report_id == report_id,
                ReportExport.format == "json"
            ).first()
            if export is None:
                export = ReportExport(id=str(uuid.uuid4()), report_id=report_id, format="json", download_count=0)
                session.add(export)
            export.download_count = (export.download_count or 0) + 1

        payload = {
            "title": report.title,
            "description": report.description,
            "components": json.loads(report.components or "[]"),
            "created_at": to_iso_string(report.created_at),
            "updated_at": to_iso_string(report.updated_at),
        }
        return download_filename(report.title), payload


# 全局报表服务实例
_report_service = None


def get_report_service() -> ReportService:
    """获取全局报表服务实例"""
    global _report_service
    if _report_service is None:
        _report_service = ReportService(get_database(), LLMService())
    return _report_service


def set_report_service(service: Optional[ReportService]) -> None:
    """替换全局报表服务实例（测试时注入模拟的LLM）"""
    global _report_service
    _report_service = service
