"""Copro FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from copro.api.routes import billing, buildings, charges
from copro.config import get_settings
from copro.services.errors import AppError, error_response

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    # Schema is managed by Alembic revisions, never created at runtime
    logger.info("Copro API starting")
    yield
    logger.info("Copro API shutting down")


app = FastAPI(
    title=settings.api_title,
    description="Recurring charges, repartition and billing calls of a copropriété",
    version=settings.api_version,
    lifespan=lifespan,
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Turn domain errors into their JSON error response."""
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message
        )
    return JSONResponse(status_code=exc.http_status, content=error_response(exc))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and answer 500."""
    logger.error("%s %s failed", request.method, request.url.path, exc_info=exc)
    error = AppError("Internal server error", "internal_error", 500)
    return JSONResponse(status_code=error.http_status, content=error_response(error))


# Include routers
app.include_router(buildings.router)
app.include_router(charges.router)
app.include_router(billing.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
