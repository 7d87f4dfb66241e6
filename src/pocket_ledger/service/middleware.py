"""Request middleware for the ledger endpoint.

Provides:
- Correlation ID propagation bound to the structured logging context
- CORS headers on every response, and preflight short-circuiting
- A JSON envelope for uncaught faults
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from structlog.contextvars import bound_contextvars

from .logging import get_logger

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propagate or generate a correlation ID per request.

    - If the incoming request has X-Correlation-ID, use it
    - Otherwise, generate a new UUID
    - Echo it in the response headers
    - Bind it to the structured logging context
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())
        request_id = str(uuid.uuid4())[:8]

        request.state.correlation_id = correlation_id
        request.state.request_id = request_id

        with bound_contextvars(
            correlation_id=correlation_id,
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        ):
            response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Attach the permissive CORS headers to every response.

    Preflight ``OPTIONS`` requests on any path are answered here with an
    empty 200 and never reach the router.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response


class ErrorEnvelopeMiddleware(BaseHTTPMiddleware):
    """Turn uncaught exceptions into a 500 ``{error, details, timestamp}``."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(
                "unhandled_request_error",
                path=request.url.path,
                method=request.method,
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "details": str(e),
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )


def get_correlation_id(request: Request) -> str | None:
    """Get the correlation ID from a request, if the middleware ran."""
    return getattr(request.state, "correlation_id", None)


__all__ = [
    "ALLOWED_METHODS",
    "CORRELATION_ID_HEADER",
    "CORSHeadersMiddleware",
    "CORS_HEADERS",
    "CorrelationIdMiddleware",
    "ErrorEnvelopeMiddleware",
    "REQUEST_ID_HEADER",
    "get_correlation_id",
]
