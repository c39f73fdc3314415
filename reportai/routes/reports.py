"""
报表相关API路由
"""
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..services.report_service import get_report_service, serialize_report
from ..services.errors import ServiceError, LLMServiceError
from ..utils.auth_helpers import get_current_user_id
from ..utils.logger import get_logger
from .common import to_http_exception

logger = get_logger(__name__)
router = APIRouter(prefix="/api/reports", tags=["reports"])


# ============ Request/Response Models ============

class GenerateReportRequest(BaseModel):
    """AI生成报表请求"""
    ai_prompt: str = Field(..., description="用户的自然语言需求")
    data_source_id: Optional[str] = Field(None, description="关联的数据源ID")


class SaveCanvasRequest(BaseModel):
    """保存画布请求"""
    title: Optional[str] = Field(None, description="报表标题")
    description: Optional[str] = Field(None, description="报表描述")
    components: Any = Field(None, description="画布组件列表")
    data_source_id: Optional[str] = Field(None, description="关联的数据源ID")


class UpdateReportRequest(BaseModel):
    """更新报表请求"""
    title: Optional[str] = Field(None, description="报表标题")
    description: Optional[str] = Field(None, description="报表描述")
    status: Optional[str] = Field(None, description="报表状态，仅可改为 published")


class SectionContentRequest(BaseModel):
    """章节内容生成请求"""
    data: Optional[Any] = Field(None, description="供模型引用的数据")


class ReportResponse(BaseModel):
    """报表响应"""
    id: str
    user_id: str
    title: str
    description: Optional[str]
    data_source_id: Optional[str]
    components: List[Any]
    generated_content: Optional[dict]
    status: str
    ai_prompt: Optional[str]
    page_count: int
    created_at: str
    updated_at: str


class GenerateReportResponse(BaseModel):
    """AI生成报表响应"""
    report: ReportResponse
    structure: dict


def _handle_unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"{action}失败: {str(e)}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(e)
    )


# ============ API Endpoints ============

@router.get("", response_model=List[ReportResponse], status_code=status.HTTP_200_OK)
async def list_reports(user_id: str = Depends(get_current_user_id)):
    """获取当前用户的全部报表（新的在前）"""
    try:
        reports = get_report_service().list_reports(user_id)
        logger.info(f"返回报表列表: count={len(reports)}")
        return [ReportResponse(**serialize_report(r)) for r in reports]
    except Exception as e:
        raise _handle_unexpected("获取报表列表", e)


@router.get("/recent", response_model=List[ReportResponse], status_code=status.HTTP_200_OK)
async def list_recent_reports(user_id: str = Depends(get_current_user_id)):
    """最近5份报表"""
    try:
        reports = get_report_service().recent_reports(user_id)
        return [ReportResponse(**serialize_report(r)) for r in reports]
    except Exception as e:
        raise _handle_unexpected("获取最近报表", e)


@router.post("/generate", response_model=GenerateReportResponse, status_code=status.HTTP_200_OK)
async def generate_report(request: GenerateReportRequest, user_id: str = Depends(get_current_user_id)):
    """
    AI生成报表

    完整流程：
    1. 检查API额度（超额返回429，不调用模型）
    2. 解析数据源类型
    3. 调用模型生成报表结构
    4. 保存报表并累计用量
    """
    try:
        logger.info(f"收到报表生成请求: prompt='{request.ai_prompt[:50]}...', data_source={request.data_source_id}")

        report, structure = await get_report_service().generate_report(
            user_id=user_id,
            ai_prompt=request.ai_prompt,
            data_source_id=request.data_source_id,
        )

        return GenerateReportResponse(
            report=ReportResponse(**serialize_report(report)),
            structure=structure.model_dump(mode="json", exclude_none=True),
        )
    except LLMServiceError as e:
        logger.error(f"报表生成失败: {e.message}")
        raise to_http_exception(e)
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _handle_unexpected("报表生成", e)


@router.post("/save-canvas", response_model=ReportResponse, status_code=status.HTTP_200_OK)
async def save_canvas(request: SaveCanvasRequest, user_id: str = Depends(get_current_user_id)):
    """
    将画布组件保存为草稿报表
    """
    try:
        logger.info(f"收到画布保存请求: title={request.title}")

        report = get_report_service().save_canvas(
            user_id=user_id,
            title=request.title,
            description=request.description,
            components=request.components,
            data_source_id=request.data_source_id,
        )
        return ReportResponse(**serialize_report(report))
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _handle_unexpected("画布保存", e)


@router.get("/{report_id}", response_model=ReportResponse, status_code=status.HTTP_200_OK)
async def get_report(report_id: str, user_id: str = Depends(get_current_user_id)):
    try:
        report = get_report_service().get_report(user_id, report_id)
        return ReportResponse(**serialize_report(report))
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _handle_unexpected("获取报表", e)


@router.put("/{report_id}", response_model=ReportResponse, status_code=status.HTTP_200_OK)
async def update_report(report_id: str, request: UpdateReportRequest, user_id: str = Depends(get_current_user_id)):
    """更新标题/描述，或发布报表"""
    try:
        report = get_report_service().update_report(
            user_id,
            report_id,
            title=request.title,
            description=request.description,
            status=request.status,
        )
        return ReportResponse(**serialize_report(report))
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _handle_unexpected("更新报表", e)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(report_id: str, user_id: str = Depends(get_current_user_id)):
    try:
        get_report_service().delete_report(user_id, report_id)
        return None
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _handle_unexpected("删除报表", e)


@router.post(
    "/{report_id}/sections/{section_id}/content",
    response_model=ReportResponse,
    status_code=status.HTTP_200_OK,
)
async def generate_section_content(
    report_id: str,
    section_id: str,
    request: SectionContentRequest,
    user_id: str = Depends(get_current_user_id),
):
    """为章节生成正文（计入API额度）"""
    try:
        report = await get_report_service().generate_section_content(
            user_id, report_id, section_id, data=request.data
        )
        return ReportResponse(**serialize_report(report))
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _handle_unexpected("章节内容生成", e)


@router.get("/{report_id}/download")
async def download_report(report_id: str, user_id: str = Depends(get_current_user_id)):
    """
    以JSON附件形式下载报表
    """
    try:
        filename, payload = get_report_service().build_download(user_id, report_id)
        logger.info(f"报表下载: id={report_id}, filename={filename}")
        return JSONResponse(
            content=payload,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _handle_unexpected("报表下载", e)


@router.post("/{report_id}/insights", response_model=ReportResponse, status_code=status.HTTP_200_OK)
async def generate_insights(
    report_id: str,
    request: SectionContentRequest,
    user_id: str = Depends(get_current_user_id),
):
    """根据提供的数据重新生成报表洞察（计入API额度）"""
    try:
        report = await get_report_service().generate_insights(user_id, report_id, request.data)
        return ReportResponse(**serialize_report(report))
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _handle_unexpected("洞察生成", e)
