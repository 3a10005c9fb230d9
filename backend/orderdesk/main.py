"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orderdesk.api.v1 import health, notifications, orders, stock
from orderdesk.config import settings
from orderdesk.db import dispose_engine
from orderdesk.logging import setup_logging
from orderdesk.services.exceptions import (
    ConfigurationError,
    DeliveryRejectedError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    TransientTransportError,
    ValidationError,
)

# Configure logging before anything else
setup_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting Order Desk API", debug=settings.debug)

    yield

    logger.info("Shutting down Order Desk API")
    await dispose_engine()
    logger.info("Database connections disposed")


app = FastAPI(
    title="Order Desk API",
    description="Order intake, order numbering and notification API",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Service errors not handled by a route map to a status by type
_ERROR_STATUS: list[tuple[type[ServiceError], int]] = [
    (NotFoundError, 404),
    (ValidationError, 422),
    (PermissionDeniedError, 403),
    (TransientTransportError, 503),
    (DeliveryRejectedError, 502),
    (ConfigurationError, 500),
]


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    status_code = next((code for error_type, code in _ERROR_STATUS if isinstance(exc, error_type)), 500)
    log = logger.error if status_code >= 500 else logger.info
    log("Service error", path=request.url.path, error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# API routes
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(orders.router, prefix="/api/v1", tags=["orders"])
app.include_router(stock.router, prefix="/api/v1", tags=["stock"])
app.include_router(notifications.router, prefix="/api/v1", tags=["notifications"])
