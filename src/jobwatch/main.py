"""
jobwatch - Main Application
===========================

SLA / status escalation engine for a job and ticket tracking portal.

Modules:
- SLA: jobs, milestones, policies, breach detection
- Reminders: operator reminders with due and snooze timers
- Notifications: the notification list and per-job timelines
- Engine: the periodic tick that drives all of the above

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Local SQLite store, config watcher, Slack relay
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from jobwatch.config import Settings, get_settings
from jobwatch.engine import EngineQueue, EscalationTicker, SLAScheduler
from jobwatch.notifications.interfaces import router as notifications_router
from jobwatch.reminders.interfaces import router as reminders_router
from jobwatch.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    register_exception_handlers,
)
from jobwatch.shared.clock import Clock, utc_now
from jobwatch.shared.infrastructure.database import (
    close_database, create_tables, get_session_maker, init_database
)
from jobwatch.shared.infrastructure.logging import get_logger, setup_logging
from jobwatch.sla.domain import SLAConfig
from jobwatch.sla.infrastructure import SLAConfigManager, SlackNotifier
from jobwatch.sla.interfaces import engine_router, router as jobs_router

logger = get_logger(__name__)


def _config_check(config_manager: Optional[SLAConfigManager]) -> str:
    if config_manager is None:
        return "not_loaded"
    return "watching" if config_manager.is_watching else "loaded"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize the local store and create tables
    3. Load SLA configuration and watch it for changes
    4. Wire the engine queue, ticker and Slack relay
    5. Start the periodic tick

    SHUTDOWN:
    1. Stop the scheduler and wait for a running tick
    2. Stop the config watcher
    3. Close Slack client and the store
    """
    settings: Settings = app.state.settings

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting jobwatch", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    engine = init_database(settings.database_url)
    await create_tables(engine)

    config_manager = SLAConfigManager()
    sla_config = config_manager.load(settings.sla_config_path)
    config_manager.start_watching()

    queue = EngineQueue(get_session_maker())
    notifier = SlackNotifier(
        webhook_url=settings.slack_webhook_url,
        channel=settings.slack_channel,
        timeout_seconds=settings.slack_timeout_seconds,
    )
    ticker = EscalationTicker(queue, clock=app.state.clock, notifier=notifier)

    scheduler: Optional[SLAScheduler] = None
    interval = sla_config.tick_interval_seconds or settings.tick_interval_seconds
    if app.state.run_scheduler and interval > 0:
        scheduler = SLAScheduler(interval_seconds=interval)
        await scheduler.start(ticker.run_once)

        loop = asyncio.get_running_loop()

        def on_config_reload(config: SLAConfig) -> None:
            # called from the watchdog thread
            if config.tick_interval_seconds:
                loop.call_soon_threadsafe(scheduler.reschedule, config.tick_interval_seconds)

        config_manager.add_listener(on_config_reload)
    else:
        logger.info("Periodic tick disabled", extra={"interval_seconds": interval})

    app.state.queue = queue
    app.state.config_provider = config_manager
    app.state.notifier = notifier
    app.state.ticker = ticker
    app.state.scheduler = scheduler

    logger.info("jobwatch started successfully")

    yield

    # === SHUTDOWN ===
    logger.info("Shutting down jobwatch")

    if scheduler:
        await scheduler.stop()
    await queue.drain()

    config_manager.stop_watching()
    await notifier.close()
    await close_database()

    logger.info("jobwatch shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    clock: Clock = utc_now,
    run_scheduler: bool = True
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Defaults to the cached environment settings
        clock: Source of "now" for the engine and the write paths
        run_scheduler: Start the periodic tick; ticks can always be run
            through ``POST /engine/tick``
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="jobwatch API",
        description="""
        ## SLA / Status Escalation Engine

        Tracks call-out jobs through their lifecycle (logged, accepted,
        on site, completed), detects SLA breaches against per-job budgets,
        and raises notifications and timeline entries. Also runs operator
        reminders with due and snooze timers.

        **Endpoints:**
        - `POST /jobs` - Log a job
        - `GET /jobs` - Dashboard with live SLA status
        - `POST /jobs/{id}/milestones/{milestone}` - Record a milestone
        - `PUT /jobs/{id}/milestones/{milestone}` - Correct a milestone
        - `PUT /jobs/{id}/policy` - Edit the SLA policy
        - `GET /jobs/{id}/timeline` - Audit timeline
        - `/reminders` - Reminder CRUD, complete, snooze
        - `/notifications` - Notification list and read flags
        - `POST /engine/tick` - Run one engine tick now
        """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.clock = clock
    app.state.run_scheduler = run_scheduler

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === Custom Middleware (from shared) ===
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    register_exception_handlers(app)

    # === Include Module Routers ===
    app.include_router(jobs_router)
    app.include_router(reminders_router)
    app.include_router(notifications_router)
    app.include_router(engine_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check with store, config and scheduler state."""
        scheduler = getattr(request.app.state, "scheduler", None)
        ticker = getattr(request.app.state, "ticker", None)
        last = ticker.last_result if ticker else None
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": {
                "database": "connected" if getattr(request.app.state, "queue", None) else "not_initialized",
                "sla_config": _config_check(getattr(request.app.state, "config_provider", None)),
                "scheduler": "running" if scheduler and scheduler.is_running else "stopped",
                "last_tick": ("ok" if last.ok else "failed") if last else "none",
            }
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


# === Development Entry Point ===

def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "jobwatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    run()
