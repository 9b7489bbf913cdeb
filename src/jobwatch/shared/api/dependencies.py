"""
Shared API Dependencies
=======================

FastAPI dependencies that hand the engine's collaborators to controllers.
Everything lives on ``app.state`` and is wired in the application lifespan.
"""

from typing import Optional, Sequence

from fastapi import Request

from jobwatch.engine import EngineQueue, EscalationTicker, SLAScheduler
from jobwatch.notifications.domain import Notification
from jobwatch.shared.clock import Clock
from jobwatch.sla.application.services import ISLAConfigProvider
from jobwatch.sla.infrastructure.external import SlackNotifier


def get_queue(request: Request) -> EngineQueue:
    return request.app.state.queue


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_config_provider(request: Request) -> ISLAConfigProvider:
    return request.app.state.config_provider


def get_notifier(request: Request) -> Optional[SlackNotifier]:
    return getattr(request.app.state, "notifier", None)


def get_ticker(request: Request) -> EscalationTicker:
    return request.app.state.ticker


def get_scheduler(request: Request) -> Optional[SLAScheduler]:
    return getattr(request.app.state, "scheduler", None)


def relay_committed(request: Request, notifications: Sequence[Notification]) -> None:
    """Hand notifications raised by a committed write to the Slack relay, without waiting on it."""
    notifier = get_notifier(request)
    if notifier is not None:
        notifier.dispatch(notifications)
