"""
Notification Infrastructure Repositories
========================================

SQLAlchemy implementations of the notification and timeline logs.
"""

from typing import List, Optional, Sequence

from sqlalchemy import func, literal_column, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jobwatch.config import NotificationType, RelatedType, TimelineEntryType
from jobwatch.notifications.application.services import (
    INotificationRepository, ITimelineRepository
)
from jobwatch.notifications.domain import Notification, TimelineEntry
from jobwatch.notifications.infrastructure.models import (
    NotificationModel, TimelineEntryModel
)


def _notification_to_domain(model: NotificationModel) -> Notification:
    return Notification(
        id=model.id,
        type=NotificationType(model.type),
        title=model.title,
        message=model.message,
        timestamp=model.timestamp,
        read=model.read,
        related_id=model.related_id,
        related_type=RelatedType(model.related_type) if model.related_type else None,
    )


class SQLAlchemyNotificationRepository(INotificationRepository):
    """
    SQLAlchemy implementation of the notification list.

    Rows are inserted once; the only update ever issued touches ``read``.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def append(self, notifications: Sequence[Notification]) -> None:
        for notification in notifications:
            self._session.add(NotificationModel(
                id=notification.id,
                type=notification.type.value,
                title=notification.title,
                message=notification.message,
                timestamp=notification.timestamp,
                read=notification.read,
                related_id=notification.related_id,
                related_type=notification.related_type.value if notification.related_type else None,
            ))
        await self._session.flush()

    async def get(self, notification_id: str) -> Optional[Notification]:
        model = await self._session.get(NotificationModel, notification_id)
        return _notification_to_domain(model) if model else None

    async def list(
        self,
        unread_only: bool = False,
        related_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Notification]:
        stmt = select(NotificationModel)
        if unread_only:
            stmt = stmt.where(NotificationModel.read.is_(False))
        if related_id:
            stmt = stmt.where(NotificationModel.related_id == related_id)
        stmt = stmt.order_by(NotificationModel.timestamp.desc()).limit(limit).offset(offset)

        result = await self._session.execute(stmt)
        return [_notification_to_domain(m) for m in result.scalars().all()]

    async def count_unread(self) -> int:
        stmt = select(func.count()).select_from(NotificationModel).where(
            NotificationModel.read.is_(False)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def mark_read(self, notification_id: str) -> bool:
        model = await self._session.get(NotificationModel, notification_id)
        if model is None:
            return False
        model.read = True
        await self._session.flush()
        return True

    async def mark_all_read(self) -> int:
        stmt = (
            update(NotificationModel)
            .where(NotificationModel.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0


class SQLAlchemyTimelineRepository(ITimelineRepository):
    """SQLAlchemy implementation of the job timeline."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def append(self, entries: Sequence[TimelineEntry]) -> None:
        for entry in entries:
            self._session.add(TimelineEntryModel(
                id=entry.id,
                job_id=entry.job_id,
                type=entry.type.value,
                description=entry.description,
                timestamp=entry.timestamp,
                details=dict(entry.details),
            ))
        await self._session.flush()

    async def list_for_job(self, job_id: str) -> List[TimelineEntry]:
        stmt = (
            select(TimelineEntryModel)
            .where(TimelineEntryModel.job_id == job_id)
            # rowid keeps insertion order for entries written in the same instant
            .order_by(TimelineEntryModel.timestamp.asc(), literal_column("timeline_entries.rowid"))
        )
        result = await self._session.execute(stmt)
        return [
            TimelineEntry(
                id=m.id,
                job_id=m.job_id,
                type=TimelineEntryType(m.type),
                description=m.description,
                timestamp=m.timestamp,
                details=dict(m.details or {}),
            )
            for m in result.scalars().all()
        ]
