"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from portfolio_tracker.app_context import get_app_context
from portfolio_tracker.config.settings import get_settings
from portfolio_tracker.config.logging_config import setup_logging
from portfolio_tracker.api.routers import holdings_router, portfolios_router, quotes_router
from portfolio_tracker.core.exceptions import AppError

logger = logging.getLogger(__name__)

# Error code -> HTTP status; anything unlisted is a 400
ERROR_STATUS = {
    "NOT_FOUND": 404,
    "VALIDATION_ERROR": 400,
    "INSUFFICIENT_SHARES": 409,
    "HOLDING_NOT_EMPTY": 409,
    "PERSISTENCE_CONFLICT": 409,
    "QUOTE_UNAVAILABLE": 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging()
    context = get_app_context()
    context.initialize()
    if context.settings.scheduler_enabled:
        context.scheduler.start()
    yield
    # Shutdown
    context.close()


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Portfolio valuation: cost-basis ledger, cached quotes and daily snapshots",
    version=settings.app_version,
    lifespan=lifespan,
)

# Include routers
app.include_router(portfolios_router)
app.include_router(holdings_router)
app.include_router(quotes_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Global handler for application errors."""
    status_code = ERROR_STATUS.get(exc.code, 400)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message},
    )


@app.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
