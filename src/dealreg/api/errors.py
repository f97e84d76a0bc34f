"""Standardized error responses across all API endpoints.

Every error leaves the API in one envelope:

    {"error": <code>, "message": <text>, "detail": <any>, "request_id": <id>}
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException

from src.dealreg.core.errors import DealRegError, Unauthenticated

logger = structlog.get_logger(__name__)


class ErrorResponse(BaseModel):
    """Standard error envelope returned by all API error handlers."""

    error: str
    message: str
    detail: Any = None
    request_id: str = "unknown"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get(
        "x-request-id", "unknown"
    )


def _envelope(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    detail: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        detail=jsonable_encoder(detail),
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


async def dealreg_error_handler(request: Request, exc: DealRegError) -> JSONResponse:
    """Render a domain error with the status and code it declares."""
    log_method = logger.warning if exc.status_code < 500 else logger.error
    log_method(
        "api.domain_error",
        error=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
        method=request.method,
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return _envelope(request, exc.status_code, exc.code, exc.message, exc.detail, headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Standardize HTTPException responses into the same JSON envelope."""
    return _envelope(
        request,
        exc.status_code,
        f"http_{exc.status_code}",
        str(exc.detail),
        exc.detail,
        headers=dict(exc.headers or {}),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies and parameters are client errors (400)."""
    return _envelope(request, 400, "validation_error", "Invalid request", exc.errors())


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch unhandled exceptions and return a consistent JSON envelope."""
    logger.error(
        "api.unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        request_id=_request_id(request),
        exc_info=exc,
    )
    return _envelope(
        request, 500, "internal_server_error", "An unexpected error occurred."
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DealRegError, dealreg_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, global_exception_handler)
