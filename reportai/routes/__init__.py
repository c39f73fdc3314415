"""
API路由模块
"""
from .auth import router as auth_router
from .users import router as users_router
from .data_sources import router as data_sources_router
from .oauth import router as oauth_router
from .uploads import router as uploads_router
from .reports import router as reports_router
from .canvas import router as canvas_router
from .billing import router as billing_router

__all__ = [
    "auth_router",
    "users_router",
    "data_sources_router",
    "oauth_router",
    "uploads_router",
    "reports_router",
    "canvas_router",
    "billing_router",
]
