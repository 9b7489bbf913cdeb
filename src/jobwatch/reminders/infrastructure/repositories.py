"""
Reminder Infrastructure Repositories
====================================

SQLAlchemy implementation of the reminder repository.
"""

from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobwatch.config import ReminderPriority, ReminderStatus, ReminderType
from jobwatch.core import RepositoryException
from jobwatch.reminders.application.services import IReminderRepository
from jobwatch.reminders.domain import Reminder
from jobwatch.reminders.infrastructure.models import ReminderModel


def reminder_to_domain(model: ReminderModel) -> Reminder:
    return Reminder(
        id=model.id,
        message=model.message,
        due_at=model.due_at,
        created_at=model.created_at,
        type=ReminderType(model.type),
        priority=ReminderPriority(model.priority),
        status=ReminderStatus(model.status),
        related_id=model.related_id,
        related_reference=model.related_reference,
        created_by=model.created_by,
        snoozed_until=model.snoozed_until,
        completed_at=model.completed_at,
    )


def _apply(model: ReminderModel, reminder: Reminder) -> None:
    model.message = reminder.message
    model.due_at = reminder.due_at
    model.created_at = reminder.created_at
    model.type = reminder.type.value
    model.priority = reminder.priority.value
    model.status = reminder.status.value
    model.related_id = reminder.related_id
    model.related_reference = reminder.related_reference
    model.created_by = reminder.created_by
    model.snoozed_until = reminder.snoozed_until
    model.completed_at = reminder.completed_at


class SQLAlchemyReminderRepository(IReminderRepository):
    """SQLAlchemy implementation of reminder repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, reminder_id: str) -> Optional[Reminder]:
        model = await self._session.get(ReminderModel, reminder_id)
        return reminder_to_domain(model) if model else None

    async def list_all(self) -> List[Reminder]:
        return await self.list()

    async def list(
        self,
        status: Optional[ReminderStatus] = None,
        related_id: Optional[str] = None
    ) -> List[Reminder]:
        stmt = select(ReminderModel)
        if status is not None:
            stmt = stmt.where(ReminderModel.status == status.value)
        if related_id:
            stmt = stmt.where(ReminderModel.related_id == related_id)
        stmt = stmt.order_by(ReminderModel.due_at.asc())

        result = await self._session.execute(stmt)
        return [reminder_to_domain(m) for m in result.scalars().all()]

    async def add(self, reminder: Reminder) -> Reminder:
        model = ReminderModel(id=reminder.id)
        _apply(model, reminder)
        self._session.add(model)
        await self._session.flush()
        return reminder

    async def save(self, reminder: Reminder) -> Reminder:
        model = await self._session.get(ReminderModel, reminder.id)
        if model is None:
            raise RepositoryException(
                f"Reminder {reminder.id} is not stored", details={"reminder_id": reminder.id}
            )
        _apply(model, reminder)
        await self._session.flush()
        return reminder

    async def save_many(self, reminders: Sequence[Reminder]) -> None:
        for reminder in reminders:
            await self.save(reminder)

    async def delete(self, reminder_id: str) -> bool:
        stmt = delete(ReminderModel).where(ReminderModel.id == reminder_id)
        result = await self._session.execute(stmt)
        return (result.rowcount or 0) > 0
