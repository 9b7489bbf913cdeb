"""
Reminders Application Layer
===========================

Reminder service, repository interface and DTOs.
"""

from jobwatch.reminders.application.dto import (
    ReminderCreateDTO,
    ReminderListResponse,
    ReminderResponse,
    ReminderUpdateDTO,
    SnoozeDTO,
)
from jobwatch.reminders.application.services import IReminderRepository, ReminderService

__all__ = [
    # DTOs
    "ReminderCreateDTO",
    "ReminderListResponse",
    "ReminderResponse",
    "ReminderUpdateDTO",
    "SnoozeDTO",
    # Services
    "ReminderService",
    # Repository Interfaces
    "IReminderRepository",
]
