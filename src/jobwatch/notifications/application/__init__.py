"""
Notifications Application Layer
===============================

Repository interfaces, the notification read service and response DTOs.
"""

from jobwatch.notifications.application.dto import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    TimelineEntryResponse,
)
from jobwatch.notifications.application.services import (
    INotificationRepository,
    ITimelineRepository,
    NotificationService,
)

__all__ = [
    # DTOs
    "MarkAllReadResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "TimelineEntryResponse",
    # Services
    "NotificationService",
    # Repository Interfaces
    "INotificationRepository",
    "ITimelineRepository",
]
