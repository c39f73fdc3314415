"""
服务层包
"""
from .encryption_service import EncryptionService, get_encryption_service
from .llm_service import LLMService
from .canvas import ReportCanvas, get_palette
from .auth_service import AuthService
from .user_service import UserService, TIER_LIMITS
from .data_source_service import DataSourceService
from .report_service import ReportService, get_report_service, set_report_service
from .billing_service import BillingService
from .errors import (
    ServiceError,
    ValidationError,
    AuthenticationError,
    NotAuthenticatedError,
    NotFoundError,
    QuotaExceededError,
    LLMServiceError,
)
from .dto import (
    Section,
    ReportStructure,
    CanvasComponent,
    ComponentRef,
    Position,
    Size,
    FilePreview,
    UserStats,
)

__all__ = [
    "EncryptionService",
    "get_encryption_service",
    "LLMService",
    "ReportCanvas",
    "get_palette",
    "AuthService",
    "UserService",
    "TIER_LIMITS",
    "DataSourceService",
    "ReportService",
    "get_report_service",
    "set_report_service",
    "BillingService",
    "ServiceError",
    "ValidationError",
    "AuthenticationError",
    "NotAuthenticatedError",
    "NotFoundError",
    "QuotaExceededError",
    "LLMServiceError",
    "Section",
    "ReportStructure",
    "CanvasComponent",
    "ComponentRef",
    "Position",
    "Size",
    "FilePreview",
    "UserStats",
]
