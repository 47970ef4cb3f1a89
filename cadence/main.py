"""
Cadence API - FastAPI Backend

Unified calendar over journal, intelligence, reminder, review, meeting and
maintenance events, plus the recurring-task scheduler that runs biweekly
self-reviews and twice-weekly maintenance analyses.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from cadence.container import build_services
from cadence.infrastructure.config import get_settings
from cadence.infrastructure.database import close_database, create_tables, init_database
from cadence.infrastructure.exceptions import register_exception_handlers
from cadence.infrastructure.log_config import configure_logging
from cadence.routers import calendar, notifications, scheduler

settings = get_settings()
configure_logging(settings.log_level, settings.log_json)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info("cadence_starting", scheduler_enabled=settings.scheduler_enabled)

    await init_database(settings.database_url, echo=settings.database_echo)
    if settings.create_tables_on_startup:
        await create_tables()

    services = build_services(settings)
    app.state.services = services

    if settings.setup_on_startup:
        try:
            await services.scheduler.setup_default_tasks()
        except Exception as e:
            logger.error("default_task_setup_failed", error=str(e))

    if settings.scheduler_enabled:
        await services.trigger.start()

    yield

    await services.trigger.stop()
    await services.reviews.drain()
    await close_database()
    logger.info("cadence_stopped")


app = FastAPI(
    title="Cadence API",
    description="Unified calendar and recurring-task scheduler",
    version="1.0.0",
    lifespan=lifespan,
)

# Register global exception handlers
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(calendar.router, prefix="/api/calendar", tags=["Calendar"])
app.include_router(scheduler.router, prefix="/api/scheduler", tags=["Scheduler"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])


@app.get("/")
async def root():
    return {
        "status": "ok",
        "service": "Cadence API",
        "version": "1.0.0"
    }


@app.get("/health")
async def health():
    """Health check with scheduler state."""
    services = getattr(app.state, "services", None)
    return {
        "status": "healthy",
        "components": {
            "api": "ok",
            "scheduler": "running" if services and services.trigger.get_status()["running"] else "stopped",
            "pending_analyses": services.reviews.pending_analyses if services else 0,
        }
    }
