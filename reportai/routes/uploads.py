"""
文件上传API路由
"""
from typing import List
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from pydantic import BaseModel

from ..services.upload_service import process_uploads, read_uploads
from ..services.dto import FilePreview
from ..services.errors import ServiceError
from ..utils.auth_helpers import get_current_user_id
from ..utils.logger import get_logger
from .common import to_http_exception

logger = get_logger(__name__)
router = APIRouter(prefix="/api/upload", tags=["upload"])


class UploadResponse(BaseModel):
    files: List[FilePreview]


@router.post("", response_model=UploadResponse, status_code=status.HTTP_200_OK)
async def upload_files(
    files: List[UploadFile] = File(...),
    user_id: str = Depends(get_current_user_id),
):
    """
    上传并解析表格文件（最多5个，CSV/TSV/XLSX/JSON）

    文件内容只用于生成预览，不落盘
    """
    try:
        logger.info(f"收到文件上传请求: user={user_id}, files={len(files)}")
        contents = await read_uploads(files)
        return UploadResponse(files=process_uploads(contents))
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"文件上传处理失败: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
    finally:
        for f in files:
            await f.close()
