"""
Reminder Controllers (API Routes)
=================================

FastAPI routes for operator reminders.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from jobwatch.config import ReminderStatus
from jobwatch.engine import EngineQueue
from jobwatch.notifications.infrastructure import SQLAlchemyNotificationRepository
from jobwatch.reminders.application import (
    ReminderCreateDTO,
    ReminderListResponse,
    ReminderResponse,
    ReminderService,
    ReminderUpdateDTO,
    SnoozeDTO,
)
from jobwatch.reminders.infrastructure import SQLAlchemyReminderRepository
from jobwatch.shared.api.dependencies import get_clock, get_queue
from jobwatch.shared.clock import Clock

router = APIRouter(prefix="/reminders", tags=["Reminders"])


class ReminderServiceFactory:
    """Builds a ReminderService bound to one session."""

    def __init__(self, clock: Clock = Depends(get_clock)):
        self.clock = clock

    def __call__(self, session: AsyncSession) -> ReminderService:
        return ReminderService(
            SQLAlchemyReminderRepository(session),
            SQLAlchemyNotificationRepository(session),
            clock=self.clock,
        )


@router.post("", response_model=ReminderResponse, status_code=status.HTTP_201_CREATED)
async def add_reminder(
    dto: ReminderCreateDTO,
    queue: EngineQueue = Depends(get_queue),
    services: ReminderServiceFactory = Depends()
):
    async with queue.transaction() as session:
        reminder = await services(session).add_reminder(dto)
    return ReminderResponse.from_domain(reminder)


@router.get("", response_model=ReminderListResponse)
async def list_reminders(
    status_filter: Optional[ReminderStatus] = Query(None, alias="status"),
    related_id: Optional[str] = Query(None),
    queue: EngineQueue = Depends(get_queue),
    services: ReminderServiceFactory = Depends()
):
    async with queue.read() as session:
        reminders = await services(session).list_reminders(status=status_filter, related_id=related_id)
    return ReminderListResponse(
        reminders=[ReminderResponse.from_domain(r) for r in reminders],
        total=len(reminders),
    )


@router.get("/{reminder_id}", response_model=ReminderResponse)
async def get_reminder(
    reminder_id: str,
    queue: EngineQueue = Depends(get_queue),
    services: ReminderServiceFactory = Depends()
):
    async with queue.read() as session:
        reminder = await services(session).get_reminder(reminder_id)
    return ReminderResponse.from_domain(reminder)


@router.patch("/{reminder_id}", response_model=ReminderResponse)
async def update_reminder(
    reminder_id: str,
    dto: ReminderUpdateDTO,
    queue: EngineQueue = Depends(get_queue),
    services: ReminderServiceFactory = Depends()
):
    async with queue.transaction() as session:
        reminder = await services(session).update_reminder(reminder_id, dto)
    return ReminderResponse.from_domain(reminder)


@router.post("/{reminder_id}/complete", response_model=ReminderResponse)
async def complete_reminder(
    reminder_id: str,
    queue: EngineQueue = Depends(get_queue),
    services: ReminderServiceFactory = Depends()
):
    async with queue.transaction() as session:
        reminder = await services(session).complete_reminder(reminder_id)
    return ReminderResponse.from_domain(reminder)


@router.post("/{reminder_id}/snooze", response_model=ReminderResponse)
async def snooze_reminder(
    reminder_id: str,
    dto: SnoozeDTO,
    queue: EngineQueue = Depends(get_queue),
    services: ReminderServiceFactory = Depends()
):
    async with queue.transaction() as session:
        reminder = await services(session).snooze_reminder(reminder_id, dto)
    return ReminderResponse.from_domain(reminder)


@router.delete("/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reminder(
    reminder_id: str,
    queue: EngineQueue = Depends(get_queue),
    services: ReminderServiceFactory = Depends()
):
    async with queue.transaction() as session:
        await services(session).delete_reminder(reminder_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
