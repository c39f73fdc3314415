"""
数据源API路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ..services.data_source_service import DataSourceService, serialize_data_source
from ..services.errors import ServiceError
from ..database import get_database
from ..utils.auth_helpers import get_current_user_id
from ..utils.logger import get_logger
from .common import to_http_exception

logger = get_logger(__name__)
router = APIRouter(prefix="/api/data-sources", tags=["data-sources"])


# ============ Request/Response Models ============

class CreateDataSourceRequest(BaseModel):
    """创建数据源请求"""
    name: str = Field(..., description="显示名称")
    type: str = Field(..., description="提供方类型（shopify, google_analytics, facebook_ads ...）")


class DataSourceResponse(BaseModel):
    """数据源响应"""
    id: str
    name: str
    type: str
    is_connected: bool
    last_sync_at: Optional[str]
    created_at: str
    updated_at: str


# ============ API Endpoints ============

@router.get("", response_model=List[DataSourceResponse], status_code=status.HTTP_200_OK)
async def list_data_sources(user_id: str = Depends(get_current_user_id)):
    """获取当前用户的数据源"""
    try:
        data_sources = DataSourceService(get_database()).list_data_sources(user_id)
        return [DataSourceResponse(**serialize_data_source(ds)) for ds in data_sources]
    except Exception as e:
        logger.error(f"获取数据源列表失败: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.post("", response_model=DataSourceResponse, status_code=status.HTTP_200_OK)
async def create_data_source(request: CreateDataSourceRequest, user_id: str = Depends(get_current_user_id)):
    """
    创建数据源

    新建的数据源总是未连接状态，连接需要走OAuth流程
    """
    try:
        logger.info(f"收到创建数据源请求: name={request.name}, type={request.type}")
        data_source = DataSourceService(get_database()).create_data_source(user_id, request.name, request.type)
        return DataSourceResponse(**serialize_data_source(data_source))
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"创建数据源失败: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/{data_source_id}", response_model=DataSourceResponse, status_code=status.HTTP_200_OK)
async def get_data_source(data_source_id: str, user_id: str = Depends(get_current_user_id)):
    try:
        data_source = DataSourceService(get_database()).get_data_source(user_id, data_source_id)
        return DataSourceResponse(**serialize_data_source(data_source))
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"获取数据源失败: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.delete("/{data_source_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_data_source(data_source_id: str, user_id: str = Depends(get_current_user_id)):
    try:
        DataSourceService(get_database()).delete_data_source(user_id, data_source_id)
        return None
    except ServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"删除数据源失败: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
