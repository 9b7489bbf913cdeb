"""
Reminder Application Services
=============================

CRUD and lifecycle actions for reminders, plus the persisted sweep the
engine runs every tick.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from jobwatch.config import ReminderPriority, ReminderStatus, ReminderType
from jobwatch.core import ResourceNotFoundException
from jobwatch.notifications.application.services import INotificationRepository
from jobwatch.reminders.application.dto import (
    ReminderCreateDTO, ReminderUpdateDTO, SnoozeDTO
)
from jobwatch.reminders.domain import Reminder, ReminderScheduler, SweepResult
from jobwatch.shared.clock import Clock, ensure_utc, utc_now
from jobwatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IReminderRepository(ABC):
    """Interface for reminder data access."""

    @abstractmethod
    async def get(self, reminder_id: str) -> Optional[Reminder]:
        """Get reminder by ID."""

    @abstractmethod
    async def list_all(self) -> List[Reminder]:
        """Every reminder, ordered by due time."""

    @abstractmethod
    async def list(
        self,
        status: Optional[ReminderStatus] = None,
        related_id: Optional[str] = None
    ) -> List[Reminder]:
        """List reminders with filters."""

    @abstractmethod
    async def add(self, reminder: Reminder) -> Reminder:
        """Create new reminder."""

    @abstractmethod
    async def save(self, reminder: Reminder) -> Reminder:
        """Update existing reminder."""

    @abstractmethod
    async def save_many(self, reminders: Sequence[Reminder]) -> None:
        """Update several reminders."""

    @abstractmethod
    async def delete(self, reminder_id: str) -> bool:
        """Delete reminder. Returns False when the ID is unknown."""


# ========== Application Services ==========

class ReminderService:
    """Reminder operations behind the HTTP layer and the engine tick."""

    def __init__(
        self,
        reminder_repository: IReminderRepository,
        notification_repository: INotificationRepository,
        clock: Clock = utc_now,
        scheduler: Optional[ReminderScheduler] = None
    ):
        self._repo = reminder_repository
        self._notification_repo = notification_repository
        self._clock = clock
        self._scheduler = scheduler or ReminderScheduler()

    async def add_reminder(self, dto: ReminderCreateDTO) -> Reminder:
        reminder = Reminder.new(
            message=dto.message,
            due_at=ensure_utc(dto.due_at),
            created_at=self._clock(),
            type=ReminderType(dto.type),
            priority=ReminderPriority(dto.priority),
            related_id=dto.related_id,
            related_reference=dto.related_reference,
            created_by=dto.created_by,
        )
        await self._repo.add(reminder)
        logger.info("Reminder created", extra={"reminder_id": reminder.id, "type": reminder.type.value})
        return reminder

    async def get_reminder(self, reminder_id: str) -> Reminder:
        reminder = await self._repo.get(reminder_id)
        if reminder is None:
            raise ResourceNotFoundException("Reminder", reminder_id)
        return reminder

    async def list_reminders(
        self,
        status: Optional[ReminderStatus] = None,
        related_id: Optional[str] = None
    ) -> List[Reminder]:
        return await self._repo.list(status=status, related_id=related_id)

    async def update_reminder(self, reminder_id: str, dto: ReminderUpdateDTO) -> Reminder:
        """
        Edit a reminder.

        Moving the due time of an overdue reminder into the future makes it
        active again.

        Raises:
            ReminderStateException: the reminder is completed
        """
        reminder = await self.get_reminder(reminder_id)
        changes = dto.model_dump(exclude_unset=True)

        if changes.get("due_at") is not None:
            changes["due_at"] = ensure_utc(changes["due_at"])
        if changes.get("type") is not None:
            changes["type"] = ReminderType(changes["type"])
        if changes.get("priority") is not None:
            changes["priority"] = ReminderPriority(changes["priority"])
        for key in ("message", "due_at", "type", "priority"):
            if key in changes and changes[key] is None:
                del changes[key]

        updated = reminder.edit(**changes)
        if updated.status == ReminderStatus.OVERDUE and updated.due_at > self._clock():
            updated = updated.reactivate()

        await self._repo.save(updated)
        logger.info("Reminder updated", extra={"reminder_id": reminder_id, "fields": sorted(changes)})
        return updated

    async def complete_reminder(self, reminder_id: str) -> Reminder:
        reminder = await self.get_reminder(reminder_id)
        completed = reminder.complete(self._clock())
        await self._repo.save(completed)
        logger.info("Reminder completed", extra={"reminder_id": reminder_id})
        return completed

    async def snooze_reminder(self, reminder_id: str, dto: SnoozeDTO) -> Reminder:
        reminder = await self.get_reminder(reminder_id)
        if dto.until is not None:
            until = ensure_utc(dto.until)
        else:
            until = self._clock() + timedelta(minutes=dto.minutes)
        snoozed = reminder.snooze(until)
        await self._repo.save(snoozed)
        logger.info("Reminder snoozed", extra={"reminder_id": reminder_id, "until": until.isoformat()})
        return snoozed

    async def delete_reminder(self, reminder_id: str) -> None:
        if not await self._repo.delete(reminder_id):
            raise ResourceNotFoundException("Reminder", reminder_id)
        logger.info("Reminder deleted", extra={"reminder_id": reminder_id})

    async def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Run the due/snooze sweep and persist what changed.

        Nothing is committed here; the caller owns the transaction.
        """
        now = now or self._clock()
        result = self._scheduler.sweep(await self._repo.list_all(), now)
        if result.updated:
            await self._repo.save_many(result.updated)
        if result.notifications:
            await self._notification_repo.append(result.notifications)
        return result
