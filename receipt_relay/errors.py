"""API error construction and exception handlers.

Every error body has the shape ``{"error": str, "code": str, ...}``. Routes
and services raise :func:`api_error`; the handlers below flatten it (and
framework errors) into that shape.
"""

import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

_DEFAULT_CODES = {
    status.HTTP_401_UNAUTHORIZED: ("Authentication required", "AUTH_REQUIRED"),
    status.HTTP_403_FORBIDDEN: ("Forbidden", "FORBIDDEN"),
    status.HTTP_404_NOT_FOUND: ("Endpoint not found", "NOT_FOUND"),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("Method not allowed", "METHOD_NOT_ALLOWED"),
}


def api_error(
    status_code: int,
    code: str,
    message: str,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> HTTPException:
    """Build an HTTPException whose detail is the error body."""
    detail = {"error": message, "code": code}
    detail.update({key: value for key, value in extra.items() if value is not None})
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


def error_message(exc: HTTPException) -> str:
    """Get the client-facing message from an HTTPException."""
    if isinstance(exc.detail, dict):
        return str(exc.detail.get("error", ""))
    return str(exc.detail)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as ``{error, code}`` bodies."""
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        content = exc.detail
    else:
        message, code = _DEFAULT_CODES.get(exc.status_code, (None, "HTTP_ERROR"))
        if exc.status_code == status.HTTP_404_NOT_FOUND or exc.detail is None:
            content = {"error": message or "Request failed", "code": code}
        else:
            content = {"error": str(exc.detail), "code": code}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request-shape errors."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "Invalid request body",
            "code": "VALIDATION_ERROR",
            "details": jsonable_errors(exc),
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Strip non-serializable context from validation errors."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unexpected failures."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
    )
