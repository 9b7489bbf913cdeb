"""
Engine Scheduler
================

Wrapper for APScheduler that fires the escalation tick at a fixed interval.
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from jobwatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

JOB_ID = "engine_tick"


class SLAScheduler:
    """
    Manages the lifecycle of the periodic tick.

    - max_instances=1: a tick never overlaps the previous one
    - coalesce=True: ticks missed while the process was suspended collapse
      into a single run
    - misfire_grace_time=None: a late tick still runs, against the current time

    On stop, a tick already in flight is allowed to finish before the
    scheduler shuts down; APScheduler would otherwise cancel it.
    """

    def __init__(self, interval_seconds: int = 60):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
        self._job_func: Optional[Callable[[], Awaitable]] = None
        self._idle: Optional[asyncio.Event] = None

    async def _tick(self) -> None:
        self._idle.clear()
        try:
            await self._job_func()
        finally:
            self._idle.set()

    async def start(self, job_func: Callable[[], Awaitable], run_immediately: bool = True) -> None:
        """Start the scheduler with the given tick coroutine."""
        if self._running:
            logger.warning("SLA scheduler already running")
            return

        # an explicit next_run_time=None would add the job paused
        first_run = {"next_run_time": datetime.now(timezone.utc)} if run_immediately else {}

        self._job_func = job_func
        self._idle = asyncio.Event()
        self._idle.set()

        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self._scheduler.add_job(
            self._tick,
            "interval",
            seconds=self.interval_seconds,
            id=JOB_ID,
            name="Escalation engine tick",
            misfire_grace_time=None,
            coalesce=True,
            max_instances=1,
            replace_existing=True,
            **first_run
        )
        self._scheduler.start()
        self._running = True

        logger.info("SLA scheduler started", extra={"interval_seconds": self.interval_seconds})

    def reschedule(self, interval_seconds: int) -> bool:
        """Change the tick interval. Returns False when nothing changed."""
        if interval_seconds < 1 or interval_seconds == self.interval_seconds:
            return False

        previous = self.interval_seconds
        self.interval_seconds = interval_seconds
        if self._running and self._scheduler is not None:
            self._scheduler.reschedule_job(JOB_ID, trigger="interval", seconds=interval_seconds)

        logger.info(
            "SLA scheduler rescheduled",
            extra={"previous_seconds": previous, "interval_seconds": interval_seconds}
        )
        return True

    async def stop(self) -> None:
        """Stop firing new ticks, wait for the one in flight, then shut down."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.pause()
            if not self._idle.is_set():
                logger.info("Waiting for the running tick to finish")
                await self._idle.wait()
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
