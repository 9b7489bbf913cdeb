"""
Notification Application Services
=================================

Repository interfaces for the two append-only logs and the read-side
service behind the notification popover and job timeline views.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from jobwatch.core import ResourceNotFoundException
from jobwatch.notifications.domain import Notification, TimelineEntry


# ========== Repository Interfaces (Dependency Inversion) ==========

class INotificationRepository(ABC):
    """Interface for the user-facing notification list."""

    @abstractmethod
    async def append(self, notifications: Sequence[Notification]) -> None:
        """Append new notifications."""

    @abstractmethod
    async def get(self, notification_id: str) -> Optional[Notification]:
        """Get notification by ID."""

    @abstractmethod
    async def list(
        self,
        unread_only: bool = False,
        related_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Notification]:
        """List notifications, newest first."""

    @abstractmethod
    async def count_unread(self) -> int:
        """Number of unread notifications."""

    @abstractmethod
    async def mark_read(self, notification_id: str) -> bool:
        """Set the read flag. Returns False when the ID is unknown."""

    @abstractmethod
    async def mark_all_read(self) -> int:
        """Set the read flag everywhere. Returns how many changed."""


class ITimelineRepository(ABC):
    """Interface for the per-job audit trail."""

    @abstractmethod
    async def append(self, entries: Sequence[TimelineEntry]) -> None:
        """Append timeline entries."""

    @abstractmethod
    async def list_for_job(self, job_id: str) -> List[TimelineEntry]:
        """Timeline of one job, oldest first."""


# ========== Application Services ==========

class NotificationService:
    """Read access and read-flag updates for notifications."""

    def __init__(self, notification_repository: INotificationRepository):
        self._repo = notification_repository

    async def list_notifications(
        self,
        unread_only: bool = False,
        related_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Notification]:
        return await self._repo.list(
            unread_only=unread_only, related_id=related_id, limit=limit, offset=offset
        )

    async def unread_count(self) -> int:
        return await self._repo.count_unread()

    async def mark_read(self, notification_id: str) -> Notification:
        if not await self._repo.mark_read(notification_id):
            raise ResourceNotFoundException("Notification", notification_id)
        return await self._repo.get(notification_id)

    async def mark_all_read(self) -> int:
        return await self._repo.mark_all_read()
