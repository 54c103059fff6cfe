"""
Request logging and error envelope for the MealCache API.

Every error leaves the API as::

    {"success": false, "error": {"code": ..., "message": ...}, "request_id": ..., "timestamp": ...}
"""

import time
import logging
from datetime import datetime, timezone
from uuid import uuid4
from decimal import Decimal

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from app.exceptions import ServiceError

logger = logging.getLogger("mealcache.api.middleware")


# ============================================================================
# Helper Functions
# ============================================================================


def make_serializable(obj):
    """Convert objects to JSON-serializable format"""
    if isinstance(obj, Decimal):
        return str(obj)
    elif isinstance(obj, dict):
        return {k: make_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [make_serializable(item) for item in obj]
    elif isinstance(obj, Exception):
        return str(obj)
    return obj


def error_response(request: Request, status_code: int, error: dict) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": make_serializable(error),
            "request_id": getattr(request.state, "request_id", None),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# ============================================================================
# Request Logging Middleware
# ============================================================================


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs its outcome and duration"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "[%s] %s %s failed after %.4fs",
                request_id,
                request.method,
                request.url.path,
                time.perf_counter() - started,
            )
            raise

        elapsed = time.perf_counter() - started
        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "[%s] %s %s -> %d (%.4fs)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
        )
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        return response


# ============================================================================
# Error Handlers
# ============================================================================


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors"""
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())

    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": exc.errors(),
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("HTTP %d on %s: %s", exc.status_code, request.url.path, exc.detail)

    return error_response(
        request,
        exc.status_code,
        {"code": f"HTTP_{exc.status_code}", "message": exc.detail},
    )


async def service_exception_handler(request: Request, exc: ServiceError):
    """Map any service-layer error to its HTTP status; 5xx are logged as errors"""
    log = logger.error if exc.http_status >= 500 else logger.warning
    log("%s on %s: %s", type(exc).__name__, request.url.path, exc)

    return error_response(request, exc.http_status, exc.to_dict())


async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s", request.url.path)

    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {
            "code": "INTERNAL_SERVER_ERROR",
            "message": "An unexpected error occurred",
        },
    )
