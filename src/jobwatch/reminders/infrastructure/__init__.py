"""
Reminders Infrastructure Layer
==============================
"""

from jobwatch.reminders.infrastructure.models import ReminderModel
from jobwatch.reminders.infrastructure.repositories import SQLAlchemyReminderRepository

__all__ = [
    "ReminderModel",
    "SQLAlchemyReminderRepository",
]
