"""
Notification Application DTOs
=============================

Response models for the notification list and the job timeline.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from jobwatch.notifications.domain import Notification, TimelineEntry


class NotificationResponse(BaseModel):
    """Response model for one notification."""
    id: str
    type: str
    title: str
    message: str
    timestamp: datetime
    read: bool
    related_id: Optional[str] = None
    related_type: Optional[str] = None

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            type=notification.type.value,
            title=notification.title,
            message=notification.message,
            timestamp=notification.timestamp,
            read=notification.read,
            related_id=notification.related_id,
            related_type=notification.related_type.value if notification.related_type else None,
        )


class NotificationListResponse(BaseModel):
    """Response model for the notification list."""
    notifications: List[NotificationResponse] = Field(default_factory=list)
    unread_count: int = Field(..., description="Unread notifications in total")


class MarkAllReadResponse(BaseModel):
    updated: int


class TimelineEntryResponse(BaseModel):
    """Response model for one timeline entry."""
    id: str
    job_id: str
    type: str
    description: str
    timestamp: datetime
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, entry: TimelineEntry) -> "TimelineEntryResponse":
        return cls(
            id=entry.id,
            job_id=entry.job_id,
            type=entry.type.value,
            description=entry.description,
            timestamp=entry.timestamp,
            details=entry.details,
        )
