"""
画布API路由
"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ..services.canvas import ReportCanvas, get_palette
from ..services.errors import ServiceError
from ..utils.auth_helpers import get_current_user_id
from .common import to_http_exception

router = APIRouter(prefix="/api/canvas", tags=["canvas"])


class ExportCanvasRequest(BaseModel):
    """导出未保存画布请求"""
    title: Optional[str] = None
    description: Optional[str] = None
    components: Any = Field(None, description="画布组件列表")


@router.get("/components", response_model=Dict[str, List[dict]], status_code=status.HTTP_200_OK)
async def list_canvas_components():
    """可拖放到画布上的组件（basic / chart / graph 三组）"""
    return get_palette()


@router.post("/export", status_code=status.HTTP_200_OK)
async def export_canvas(request: ExportCanvasRequest, user_id: str = Depends(get_current_user_id)):
    """导出当前画布布局为JSON，不保存报表"""
    try:
        canvas = ReportCanvas.from_payload(request.components)
        return canvas.to_download(request.title, request.description)
    except ServiceError as e:
        raise to_http_exception(e)
