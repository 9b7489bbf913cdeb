"""
Shared API Middleware
======================

Common middleware and exception handlers for the HTTP surface.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from jobwatch.core import (
    ApplicationException,
    ConfigurationException,
    DomainException,
    ExternalServiceException,
    RepositoryException,
    ResourceNotFoundException,
    ValidationException,
)
from jobwatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    Correlation IDs link every log line written while serving a request.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request with method, path, status and duration.

    Health probes are logged at debug so they don't drown the write log.
    """

    quiet_paths = frozenset({"/health"})

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context = {
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "method": request.method,
            "path": request.url.path,
        }
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            context["elapsed_ms"] = int((time.perf_counter() - started) * 1000)
            logger.error("Request failed", extra={**context, "error": str(e)})
            raise

        context["status_code"] = response.status_code
        context["elapsed_ms"] = int((time.perf_counter() - started) * 1000)
        log = logger.debug if request.url.path in self.quiet_paths else logger.info
        log("Request handled", extra=context)
        return response


_STATUS_CODES = (
    (ResourceNotFoundException, 404),
    (ValidationException, 422),
    (DomainException, 409),
    (ConfigurationException, 500),
    (RepositoryException, 500),
    (ExternalServiceException, 502),
)


def status_code_for(exc: ApplicationException) -> int:
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 400


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """Map the application exception hierarchy onto HTTP status codes."""
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    status_code = status_code_for(exc)

    log = logger.error if status_code >= 500 else logger.info
    log(
        "Request rejected",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
            "status_code": status_code
        }
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "detail": exc.message,
            "error_type": type(exc).__name__,
            "details": exc.details,
            "correlation_id": correlation_id
        }
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Returns consistent error responses for all exceptions.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    # Don't expose internal details outside development
    is_dev = getattr(getattr(request.app.state, "settings", None), "environment", None) == "development"

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
