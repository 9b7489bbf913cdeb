"""
Notifications Infrastructure Layer
==================================

SQLAlchemy models and repositories for notifications and timelines.
"""

from jobwatch.notifications.infrastructure.models import NotificationModel, TimelineEntryModel
from jobwatch.notifications.infrastructure.repositories import (
    SQLAlchemyNotificationRepository,
    SQLAlchemyTimelineRepository,
)

__all__ = [
    "NotificationModel",
    "TimelineEntryModel",
    "SQLAlchemyNotificationRepository",
    "SQLAlchemyTimelineRepository",
]
