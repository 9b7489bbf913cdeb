"""
Notification Domain Entities
============================

The two append-only logs the engine writes to:

- Notification: user-facing, raised by an SLA breach or an overdue reminder.
  Only the ``read`` flag may ever change.
- TimelineEntry: per-job audit trail (milestones, policy edits, breaches).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from jobwatch.config import NotificationType, RelatedType, TimelineEntryType


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex}"


@dataclass
class Notification:
    """User-facing notification entry."""

    id: str
    type: NotificationType
    title: str
    message: str
    timestamp: datetime
    read: bool = False
    related_id: Optional[str] = None
    related_type: Optional[RelatedType] = None

    @classmethod
    def create(
        cls,
        type: NotificationType,
        title: str,
        message: str,
        timestamp: datetime,
        related_id: Optional[str] = None,
        related_type: Optional[RelatedType] = None,
    ) -> "Notification":
        """Build a new unread notification with a fresh id."""
        return cls(
            id=_new_id("notif"),
            type=type,
            title=title,
            message=message,
            timestamp=timestamp,
            read=False,
            related_id=related_id,
            related_type=related_type,
        )

    def mark_read(self) -> None:
        self.read = True


@dataclass(frozen=True)
class TimelineEntry:
    """Immutable audit trail entry attached to a job."""

    id: str
    job_id: str
    type: TimelineEntryType
    description: str
    timestamp: datetime
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        job_id: str,
        type: TimelineEntryType,
        description: str,
        timestamp: datetime,
        details: Optional[Dict[str, Any]] = None,
    ) -> "TimelineEntry":
        return cls(
            id=_new_id("audit"),
            job_id=job_id,
            type=type,
            description=description,
            timestamp=timestamp,
            details=details or {},
        )
