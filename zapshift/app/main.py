"""
Zap Shift Server.

Parcel delivery backend: senders create parcels and pay through hosted
checkout, admins approve riders and assign them, riders complete deliveries.

Run with:

    uvicorn zapshift.app.main:app
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from zapshift.app.core.config import settings
from zapshift.app.api.v1.router import router as api_v1_router
from zapshift.app.core.observability import ObservabilityMiddleware, configure_logging
from zapshift.app.core.redis_client import close_redis, ping_redis
from zapshift.app.db.session import engine, Base
from zapshift.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Registers every table on Base.metadata
from zapshift.app.models import audit_log, parcel, payment, rider, user  # noqa: F401

configure_logging(settings.log_level)
logger = logging.getLogger("zapshift")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup; release the pool and Redis on shutdown."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.app_name, settings.api_version)

    yield

    await close_redis()
    await engine.dispose()
    logger.info("%s stopped", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Parcels, hosted checkout payments, rider applications and assignment",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to Zap Shift Server",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Liveness plus the state of the revoked-token store.

    A Redis outage does not fail the check: token revocation fails open.
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
    }


# The web client calls the routes unprefixed (/parcels, /payment-success ...)
app.include_router(api_v1_router)
