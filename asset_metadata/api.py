"""
FastAPI application for the asset metadata service.
"""

from __future__ import annotations

import importlib.metadata
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import get_settings
from .db.base import init_database
from .errors import InternalError, ServiceError, ValidationError
from .logging_config import bind_context, clear_context, configure_logging
from .routes import (
    components_router,
    firmware_router,
    firmware_sets_router,
    servers_router,
)

logger = structlog.get_logger()

settings = get_settings()

PACKAGE_NAME = "asset-metadata-service"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    configure_logging(settings)
    logger.info("service_starting", environment=settings.environment)

    try:
        await init_database()
    except Exception as e:
        logger.error("service_start_failed", error=str(e))
        raise

    yield

    logger.info("service_stopped")


app = FastAPI(
    title=settings.app_name,
    description="Namespaced JSON metadata for servers, components and firmware sets",
    version=importlib.metadata.version(PACKAGE_NAME),
    lifespan=lifespan,
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag every log line of a request with its request id."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    clear_context()
    bind_context(request_id=request_id, method=request.method, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_context()
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("internal_error", path=request.url.path, error=repr(exc.__cause__))
    else:
        logger.info(
            "request_rejected",
            path=request.url.path,
            kind=exc.kind,
            message=exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies and parameters are client errors (400)."""
    error = ValidationError("invalid request payload")
    body = error.to_dict()
    body["details"] = jsonable_encoder(exc.errors())
    return JSONResponse(status_code=error.status_code, content=body)


app.include_router(firmware_sets_router)
app.include_router(firmware_router)
app.include_router(servers_router)
app.include_router(components_router)


# Health and Info Endpoints
@app.get("/healthz", tags=["system"])
def healthz() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/version", tags=["system"])
def version() -> dict[str, str]:
    """Return the version of the application."""
    return {"version": importlib.metadata.version(PACKAGE_NAME)}
