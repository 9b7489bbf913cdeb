"""
Escalation Ticker
=================

One tick: re-evaluate every job against the current time, sweep the
reminders, and store every resulting status change, notification and
timeline entry in a single transaction.

A tick that fails partway leaves nothing behind; the next tick simply
tries again with a fresh "now". There is no backlog replay: a tick that
runs late after the process was suspended evaluates against the real
current time.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import uuid4

from jobwatch.engine.queue import EngineQueue
from jobwatch.notifications.infrastructure.repositories import (
    SQLAlchemyNotificationRepository, SQLAlchemyTimelineRepository
)
from jobwatch.reminders.application.services import ReminderService
from jobwatch.reminders.domain import ReminderScheduler
from jobwatch.reminders.infrastructure.repositories import SQLAlchemyReminderRepository
from jobwatch.shared.clock import Clock, utc_now
from jobwatch.shared.infrastructure.logging import get_logger, log_latency
from jobwatch.sla.application.services import EscalationService
from jobwatch.sla.domain import BreachEmitter
from jobwatch.sla.infrastructure.external import SlackNotifier
from jobwatch.sla.infrastructure.repositories import SQLAlchemyJobRepository

logger = get_logger(__name__)


@dataclass
class TickResult:
    """Summary of one tick."""
    tick_id: str
    at: datetime
    ok: bool = True
    jobs_evaluated: int = 0
    jobs_changed: int = 0
    jobs_breached: int = 0
    reminders_updated: int = 0
    notifications: int = 0
    timeline_entries: int = 0
    error: Optional[str] = None


class EscalationTicker:
    """
    Drives the evaluator, emitter and reminder sweep once per call.

    Committed notifications are handed to the Slack relay after the
    transaction; delivery runs in the background and never delays or
    fails the tick.
    """

    def __init__(
        self,
        queue: EngineQueue,
        clock: Clock = utc_now,
        notifier: Optional[SlackNotifier] = None,
        emitter: Optional[BreachEmitter] = None,
        reminder_scheduler: Optional[ReminderScheduler] = None
    ):
        self._queue = queue
        self._clock = clock
        self._notifier = notifier
        self._emitter = emitter or BreachEmitter()
        self._reminder_scheduler = reminder_scheduler or ReminderScheduler()
        self.last_result: Optional[TickResult] = None

    async def run_once(self) -> TickResult:
        tick_id = uuid4().hex[:12]
        result = TickResult(tick_id=tick_id, at=self._clock())

        try:
            with log_latency(logger, "engine_tick", tick_id=tick_id):
                async with self._queue.transaction() as session:
                    # read under the lock, after any queued write
                    now = result.at = self._clock()
                    notifications = SQLAlchemyNotificationRepository(session)

                    escalation = EscalationService(
                        SQLAlchemyJobRepository(session),
                        SQLAlchemyTimelineRepository(session),
                        notifications,
                        self._emitter,
                    )
                    outcome = await escalation.run(now)

                    reminders = ReminderService(
                        SQLAlchemyReminderRepository(session),
                        notifications,
                        clock=lambda: now,
                        scheduler=self._reminder_scheduler,
                    )
                    swept = await reminders.sweep(now)
        except Exception as e:
            logger.exception("Engine tick failed, rolled back", extra={"tick_id": tick_id})
            result.ok = False
            result.error = str(e)
            self.last_result = result
            return result

        raised = outcome.emission.notifications + swept.notifications
        result.jobs_evaluated = outcome.evaluated
        result.jobs_changed = outcome.changed
        result.jobs_breached = outcome.breached
        result.reminders_updated = len(swept.updated)
        result.notifications = len(raised)
        result.timeline_entries = len(outcome.emission.timeline)
        self.last_result = result

        if result.jobs_changed or result.reminders_updated:
            logger.info(
                "Engine tick applied changes",
                extra={
                    "tick_id": tick_id,
                    "jobs_changed": result.jobs_changed,
                    "reminders_updated": result.reminders_updated,
                    "notifications": result.notifications,
                }
            )

        if self._notifier is not None:
            self._notifier.dispatch(raised)

        return result
