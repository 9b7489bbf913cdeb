"""
Reminders Domain Layer
======================

Reminder entity and the stateless sweep that drives its timers.
"""

from jobwatch.reminders.domain.entities import Reminder
from jobwatch.reminders.domain.scheduler import ReminderScheduler, SweepResult, sweep

__all__ = [
    "Reminder",
    "ReminderScheduler",
    "SweepResult",
    "sweep",
]
