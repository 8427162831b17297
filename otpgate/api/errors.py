"""JSON error envelopes and exception handlers for the HTTP API."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import cast

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

ERROR_INVALID_INPUT = "invalid_input"
ERROR_NO_PENDING_CREDENTIAL = "no_pending_credential"
ERROR_INVALID_CREDENTIAL = "invalid_credential"
ERROR_CREDENTIAL_EXPIRED = "credential_expired"
ERROR_GATEWAY_TIMEOUT = "gateway_timeout"
ERROR_GATEWAY_ERROR = "gateway_error"
ERROR_ROUTE_NOT_FOUND = "route_not_found"
ERROR_INTERNAL = "internal_error"

_INTERNAL_ERROR_MESSAGE = "Internal server error."


def api_error(*, status_code: int, error: str, message: str) -> HTTPException:
    """Build an HTTPException rendered as the JSON error envelope."""
    return HTTPException(
        status_code=status_code,
        detail={"error": error, "message": message},
    )


def invalid_input_error(message: str) -> HTTPException:
    """Build deterministic error for missing or malformed request fields."""
    return api_error(
        status_code=status.HTTP_400_BAD_REQUEST,
        error=ERROR_INVALID_INPUT,
        message=message,
    )


def install_exception_handlers(app: FastAPI) -> None:
    """Register envelope renderers for HTTP, validation and unexpected errors."""
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)


def error_envelope(*, error: str, message: str, **extra: object) -> dict[str, object]:
    """Build the JSON body shared by every failed request."""
    return {
        "success": False,
        "error": error,
        "message": message,
        **extra,
        "timestamp": datetime.now(tz=UTC).isoformat(),
    }


async def _handle_http_exception(request: Request, exc: Exception) -> JSONResponse:
    http_exc = cast("StarletteHTTPException", exc)
    detail = cast("object", http_exc.detail)
    if isinstance(detail, dict):
        detail_map = cast("dict[str, object]", detail)
        body = error_envelope(
            error=str(detail_map.get("error", ERROR_INTERNAL)),
            message=str(detail_map.get("message", "")),
        )
    elif http_exc.status_code == status.HTTP_404_NOT_FOUND:
        logger.info(
            "Route not found",
            extra={"method": request.method, "path": request.url.path},
        )
        body = error_envelope(
            error=ERROR_ROUTE_NOT_FOUND,
            message="Route not found.",
            method=request.method,
            url=request.url.path,
        )
    else:
        body = error_envelope(
            error=_error_code_for_status(http_exc.status_code),
            message=str(detail),
        )
    return JSONResponse(
        status_code=http_exc.status_code,
        content=body,
        headers=http_exc.headers,
    )


async def _handle_validation_error(request: Request, exc: Exception) -> JSONResponse:
    _ = request
    validation_exc = cast("RequestValidationError", exc)
    fields = sorted(
        {
            ".".join(str(part) for part in error.get("loc", ())[1:])
            for error in validation_exc.errors()
        }
        - {""},
    )
    message = (
        f"Invalid request fields: {', '.join(fields)}."
        if fields
        else "Invalid request body."
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_envelope(error=ERROR_INVALID_INPUT, message=message),
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error while serving request",
        exc_info=exc,
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_envelope(error=ERROR_INTERNAL, message=_INTERNAL_ERROR_MESSAGE),
    )


def _error_code_for_status(status_code: int) -> str:
    if status_code < status.HTTP_500_INTERNAL_SERVER_ERROR:
        return ERROR_INVALID_INPUT
    return ERROR_INTERNAL
