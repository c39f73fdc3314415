"""
Session user middleware for ReportAI

Reads the signed session cookie (populated by Starlette's SessionMiddleware
at login) and exposes the authenticated user id on request.state so routes
can depend on it without touching the session directly.
"""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from reportai.utils.logger import get_logger

logger = get_logger(__name__)


class SessionUserMiddleware(BaseHTTPMiddleware):
    """
    Middleware to extract the logged-in user from the session.

    Sets request.state.user_id (None for anonymous requests).
    Must be registered *before* SessionMiddleware so that SessionMiddleware
    wraps it and the session is already decoded when dispatch runs.
    """

    async def dispatch(self, request: Request, call_next):
        session = request.scope.get("session") or {}
        user_id = session.get("user_id")

        request.state.user_id = user_id

        if user_id:
            logger.debug(f"Authenticated request: {request.method} {request.url.path} (user={user_id})")
        else:
            logger.debug(f"Anonymous request: {request.method} {request.url.path}")

        response = await call_next(request)
        return response


__all__ = ["SessionUserMiddleware"]
