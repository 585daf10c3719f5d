"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.app.api.routes.admin import router as admin_router
from backend.app.api.routes.feed import router as feed_router
from backend.app.api.routes.health import router as health_router
from backend.app.core.logging import EVENT_APP_START, EVENT_CONFIG_LOADED, setup_logging
from backend.app.core.settings import settings
from backend.app.db.engine import init_db
from backend.app.db.migrations import run_migrations

setup_logging(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    logger.info(EVENT_APP_START)
    logger.info("%s: %s", EVENT_CONFIG_LOADED, settings.safe_dump())
    init_db()
    run_migrations()
    if settings.score_recalc_enabled:
        from backend.app.core.scheduler import start_score_recalculation_scheduler

        start_score_recalculation_scheduler(settings.score_recalc_interval_seconds)
    logger.info("Feed ranking API ready")
    yield
    if settings.score_recalc_enabled:
        from backend.app.core.scheduler import stop_score_recalculation_scheduler

        stop_score_recalculation_scheduler()
    logger.info("Feed ranking API shutting down")


app = FastAPI(
    title="Feed Ranking API",
    version="0.1.0",
    description="Post scoring, periodic score recalculation and ranked feeds.",
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: log details, return safe generic message."""
    from backend.app.core.errors import normalize_unknown_error

    error = normalize_unknown_error(exc, operation=f"{request.method} {request.url.path}")
    return JSONResponse(
        status_code=error.http_status,
        content={"detail": error.user_message},
    )


app.include_router(health_router, tags=["health"])
app.include_router(feed_router, tags=["feed"])
app.include_router(admin_router, tags=["admin"])


def run() -> None:
    """Serve the API with uvicorn on the configured host/port."""
    import uvicorn

    uvicorn.run(
        "backend.app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )
