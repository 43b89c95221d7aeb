"""API middleware and exception handlers: CORS, request logging, error bodies.

Every error leaving the API has the body ``{"error": str}`` (plus an
optional ``detail``):

    GemShopError subclasses  -> their ``http_status`` (400 / 404 / 500)
    request validation       -> 400 with the fixed per-field message
    HTTPException            -> its status, ``detail`` as the error
    anything else            -> 500 "An internal server error occurred: ..."

# ─── MIDDLEWARE EXECUTION ORDER ────────────────────────────────────────
#
# Starlette middleware is a stack (last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)   # added 1st -> inner
#     app.add_middleware(RequestLoggingMiddleware)  # added 2nd -> outer
#
#   Request flow:
#     Client -> RequestLogging -> ErrorHandling -> route handler
#
# So RequestLoggingMiddleware sees the final status code, including the
# 500 that ErrorHandling produced for an unexpected exception.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from gemshop.api.schemas import FIELD_ERROR_MESSAGES, INVALID_BODY, ErrorResponse
from gemshop.utils.errors import GemShopError
from gemshop.utils.logging import bind_context, clear_context, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

_INTERNAL_ERROR_PREFIX = "An internal server error occurred"


def internal_error_message(message: str) -> str:
    return f"{_INTERNAL_ERROR_PREFIX}: {message}"


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
    )


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware.  Defaults to ``["*"]`` for development."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration.

    A ``request_id`` is bound to the logging context for the duration of
    the request so service-level log lines can be correlated.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        bind_context(request_id=request_id)
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )
            clear_context()


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Last line of defence: turn any escaped exception into a JSON 500.

    Application errors are normally handled by the exception handlers
    registered in :func:`register_exception_handlers`; this catches the
    rest.  Stack traces are logged server-side only.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except GemShopError as exc:
            return _gemshop_error_response(request, exc)
        except Exception as exc:  # noqa: BLE001 -- transport boundary
            _logger.exception(
                "unhandled_error",
                error_type=type(exc).__name__,
                path=str(request.url.path),
            )
            return _error_response(500, internal_error_message(str(exc)))


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def validation_error_message(exc: RequestValidationError) -> str:
    """Return the client message for the first invalid request field."""
    for error in exc.errors():
        loc = error.get("loc", ())
        for part in loc[1:]:
            if isinstance(part, str) and part in FIELD_ERROR_MESSAGES:
                return FIELD_ERROR_MESSAGES[part]
    return INVALID_BODY


def _gemshop_error_response(request: Request, exc: GemShopError) -> JSONResponse:
    log = _logger.warning if exc.http_status < 500 else _logger.error
    log(
        "application_error",
        error_type=type(exc).__name__,
        message=exc.message,
        provider=exc.provider_name,
        status=exc.http_status,
        path=str(request.url.path),
    )
    if exc.http_status >= 500:
        return _error_response(exc.http_status, internal_error_message(exc.message))
    return _error_response(exc.http_status, exc.message)


async def _handle_gemshop_error(request: Request, exc: GemShopError) -> JSONResponse:
    return _gemshop_error_response(request, exc)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = validation_error_message(exc)
    _logger.info(
        "request_validation_failed",
        path=str(request.url.path),
        error=message,
    )
    return _error_response(400, message)


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GemShopError, _handle_gemshop_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
