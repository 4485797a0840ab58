"""HTTP middleware and exception handlers."""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vibest_agent.errors import SessionError
from vibest_agent.models import ErrorDetail, ErrorResponse

logger = structlog.get_logger(__name__)

# Stable error code -> HTTP status
ERROR_STATUS = {
    "UNAUTHORIZED": 401,
    "NOT_FOUND": 404,
    "INVALID_STATE": 409,
    "VALIDATION_ERROR": 422,
    "ENGINE_START_FAILED": 502,
    "ENGINE_STREAM_ERROR": 502,
}


def error_body(code: str, message: str, details: object = None) -> dict:
    return ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details)
    ).model_dump()


async def request_logging_middleware(request: Request, call_next):
    request_id = str(uuid.uuid4())
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    start_time = time.monotonic()
    logger.info("Request started")
    try:
        response = await call_next(request)
    except Exception:
        duration_ms = (time.monotonic() - start_time) * 1000
        logger.exception("Request failed", duration_ms=round(duration_ms, 2))
        structlog.contextvars.clear_contextvars()
        raise
    duration_ms = (time.monotonic() - start_time) * 1000
    logger.info(
        "Request completed",
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )
    structlog.contextvars.clear_contextvars()
    return response


async def session_error_handler(request: Request, exc: SessionError):
    status_code = ERROR_STATUS.get(exc.code, 500)
    logger.info("Session error", code=exc.code, status_code=status_code, message=str(exc))
    return JSONResponse(status_code=status_code, content=error_body(exc.code, str(exc)))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Raised by routing itself (unknown path, wrong method)
    code = {404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=error_body("VALIDATION_ERROR", "Invalid request", jsonable_encoder(exc.errors())),
    )
