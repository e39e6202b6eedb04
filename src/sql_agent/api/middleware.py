"""
Middleware and exception handlers for the SQL agent FastAPI application.

This module contains:
- HTTP middleware for trace IDs and request logging
- Centralized exception handlers

Exception Handling Strategy:
- Pipeline outcomes (blocked SQL, database errors, missing LLM) are
  answers and never reach these handlers
- SQLAgentException subclasses map to their http_status
  (CatalogUnavailableError -> 503)
- Responses include trace_id for debugging

Usage in main.py:
    from .api.middleware import register_exception_handlers
    register_exception_handlers(app)
"""

from datetime import datetime, timezone
from typing import Callable, Dict

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..utils.logging import get_module_logger
from ..utils.tracing import generate_trace_id, set_trace_id, current_trace_id
from ..domain.responses import ErrorResponse
from ..domain.errors import SQLAgentException

logger = get_module_logger()

TRACE_ID_HEADER = "X-Trace-ID"
PROCESS_TIME_HEADER = "X-Process-Time"

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


# =============================================================================
# Middleware Functions
# =============================================================================


async def trace_id_middleware(request: Request, call_next: Callable) -> Response:
    """
    Set the request's trace ID and echo it in the response.

    Reuses an incoming X-Trace-ID header, otherwise generates one.
    """
    trace_id = request.headers.get(TRACE_ID_HEADER) or generate_trace_id()
    set_trace_id(trace_id)

    response = await call_next(request)
    response.headers[TRACE_ID_HEADER] = trace_id
    return response


async def logging_middleware(request: Request, call_next: Callable) -> Response:
    """
    Log each request and its outcome; add X-Process-Time in milliseconds.

    The question text is not logged, only the path.
    """
    start_time = datetime.now(timezone.utc)
    trace_id = current_trace_id()

    logger.info(
        "HTTP request started",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
        trace_id=trace_id
    )

    response = await call_next(request)

    duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
    response.headers[PROCESS_TIME_HEADER] = str(round(duration_ms, 2))

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
        trace_id=trace_id
    )

    return response


# =============================================================================
# Exception Handlers
# =============================================================================


def _create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Dict | None = None
) -> JSONResponse:
    """
    Build the standard error body:
    {"error", "message", "details"?, "trace_id", "timestamp"}
    """
    error_response = ErrorResponse(
        error=error_code.lower(),
        message=message,
        details=details,
        trace_id=current_trace_id(),
        timestamp=datetime.now(timezone.utc)
    )

    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True)
    )


async def sql_agent_exception_handler(request: Request, exc: SQLAgentException) -> JSONResponse:
    """Map a SQLAgentException to its HTTP status and error code."""
    log_method = logger.warning if exc.http_status < 500 else logger.error
    log_method(
        f"{exc.__class__.__name__}: {exc.message}",
        error_code=exc.error_code,
        http_status=exc.http_status,
        details=exc.details,
        path=request.url.path,
        method=request.method,
        trace_id=current_trace_id()
    )

    return _create_error_response(
        status_code=exc.http_status,
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details or None
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with field-level details (e.g. an unknown format value)."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        }
        for error in exc.errors()
    ]

    logger.warning(
        "Request validation failed",
        error_count=len(errors),
        errors=errors,
        path=request.url.path,
        trace_id=current_trace_id()
    )

    return _create_error_response(
        status_code=422,
        error_code="VALIDATION_ERROR",
        message="Request validation failed",
        details={"errors": errors}
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (404, 405, ...) in the standard body."""
    error_code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")

    logger.warning(
        f"HTTP {exc.status_code}: {exc.detail}",
        error_code=error_code,
        path=request.url.path,
        trace_id=current_trace_id()
    )

    return _create_error_response(
        status_code=exc.status_code,
        error_code=error_code,
        message=str(exc.detail) if exc.detail else f"HTTP {exc.status_code} error"
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Fallback for unhandled exceptions: log everything, expose nothing.
    """
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        trace_id=current_trace_id(),
        exc_info=True
    )

    return _create_error_response(
        status_code=500,
        error_code="INTERNAL_ERROR",
        message="An internal server error occurred. Please try again later."
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Order: SQLAgentException, RequestValidationError, StarletteHTTPException,
    then Exception as the fallback.
    """
    app.add_exception_handler(SQLAgentException, sql_agent_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)  # type: ignore[arg-type]

    logger.info("Exception handlers registered")


# =============================================================================
# OpenAPI Error Response Models (for documentation)
# =============================================================================

_EXAMPLE_TRACE_ID = "550e8400-e29b-41d4-a716-446655440000"

ERROR_RESPONSES = {
    422: {
        "description": "Validation Error - Unknown format or oversized question",
        "content": {
            "application/json": {
                "example": {
                    "error": "validation_error",
                    "message": "Request validation failed",
                    "details": {"errors": [{"field": "query.format", "message": "Input should be 'json', 'sql', 'md' or 'sqldownload'", "type": "enum"}]},
                    "trace_id": _EXAMPLE_TRACE_ID,
                    "timestamp": "2026-01-15T10:30:00Z"
                }
            }
        }
    },
    500: {
        "description": "Internal Server Error - An unexpected error occurred",
        "content": {
            "application/json": {
                "example": {
                    "error": "internal_error",
                    "message": "An internal server error occurred. Please try again later.",
                    "trace_id": _EXAMPLE_TRACE_ID,
                    "timestamp": "2026-01-15T10:30:00Z"
                }
            }
        }
    },
    503: {
        "description": "Service Unavailable - Catalog metadata could not be read",
        "content": {
            "application/json": {
                "example": {
                    "error": "catalog_unavailable",
                    "message": "Catalog unavailable: Failed to read catalog metadata: Database client is not connected",
                    "trace_id": _EXAMPLE_TRACE_ID,
                    "timestamp": "2026-01-15T10:30:00Z"
                }
            }
        }
    }
}
