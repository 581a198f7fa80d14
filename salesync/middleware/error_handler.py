"""
Global Error Handler Middleware
Turns unhandled exceptions into JSON responses shaped like SyncResponse
"""
import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catches unhandled exceptions and answers 500 with {status, message}."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                f"Unhandled exception during {request.method} {request.url.path}",
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content={
                    "status": "ERROR",
                    "message": "Internal server error",
                    "error_type": type(exc).__name__,
                }
            )
