"""FastAPI application factory for the ledger endpoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..config import ServiceConfig
from ..ledger.errors import NotFoundError, ValidationError
from .middleware import (
    ALLOWED_METHODS,
    CORSHeadersMiddleware,
    CorrelationIdMiddleware,
    ErrorEnvelopeMiddleware,
)
from .models import HealthResponse
from .router import build_router
from .table import TransactionTable

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup/shutdown."""
    table: TransactionTable = app.state.table
    logger.info(f"Starting ledger endpoint with {len(table)} transactions...")
    yield
    logger.info("Ledger endpoint shutdown complete")


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "details": details},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 405:
            return JSONResponse(
                status_code=405,
                content={
                    "error": "Method not allowed",
                    "allowedMethods": list(ALLOWED_METHODS),
                },
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


def create_ledger_app(
    config: ServiceConfig | None = None,
    table: TransactionTable | None = None,
) -> FastAPI:
    """Create and configure the ledger FastAPI application.

    Args:
        config: ServiceConfig instance (default: ServiceConfig())
        table: Pre-built transaction table (default: seeded per config)

    Returns:
        Configured FastAPI application
    """
    config = config or ServiceConfig()
    table = table if table is not None else TransactionTable(seed_defaults=config.seed_defaults)

    app = FastAPI(
        title="Pocket Ledger",
        description="In-memory transactions endpoint for the personal-finance ledger",
        version=__version__,
        lifespan=_lifespan,
    )

    # Outermost last: CORS wraps the correlation id, which wraps the 500 envelope
    app.add_middleware(ErrorEnvelopeMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(CORSHeadersMiddleware)

    _register_exception_handlers(app)
    app.include_router(build_router(table))

    app.state.table = table
    app.state.config = config

    @app.get("/healthz", response_model=HealthResponse)
    def healthz() -> HealthResponse:
        """Liveness check with the current record count."""
        return HealthResponse(version=__version__, count=len(table))

    return app


def create_app_from_env() -> FastAPI:
    """Create app using environment variable configuration."""
    return create_ledger_app(ServiceConfig.from_env())


__all__ = ["create_app_from_env", "create_ledger_app"]
