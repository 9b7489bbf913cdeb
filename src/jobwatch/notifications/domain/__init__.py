"""
Notifications Domain Layer
==========================

Append-only notification and timeline records produced as side effects of
SLA and reminder transitions.
"""

from jobwatch.notifications.domain.entities import Notification, TimelineEntry

__all__ = [
    "Notification",
    "TimelineEntry",
]
