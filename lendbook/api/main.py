"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from lendbook.api.middleware import RequestIDMiddleware, MetricsMiddleware
from lendbook.api.v1 import agreements, credit, debtors, installments
from lendbook.domain.exceptions import NotFoundError, PersistenceError, ValidationError
from lendbook.infrastructure.database.session import init_db
from lendbook.infrastructure.observability.logging import setup_logging
from lendbook.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logging.warning(f"Validation error: {exc}", extra={"request_id": _request_id(request)})
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logging.error(f"Persistence error: {exc}", extra={"request_id": _request_id(request)})
    return JSONResponse(status_code=503, content={"detail": "Could not save changes, nothing was applied"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Lendbook",
        description="Informal lending ledger and behavioral credit scoring",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(debtors.router, prefix="/v1", tags=["debtors"])
    app.include_router(agreements.router, prefix="/v1", tags=["agreements"])
    app.include_router(installments.router, prefix="/v1", tags=["installments"])
    app.include_router(credit.router, prefix="/v1", tags=["credit"])

    return app


app = create_app()
