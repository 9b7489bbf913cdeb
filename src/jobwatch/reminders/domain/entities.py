"""
Reminder Domain Entities
========================

Operator reminders attached to jobs, tickets or nothing at all.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional
from uuid import uuid4

from jobwatch.config import ReminderPriority, ReminderStatus, ReminderType
from jobwatch.core import ReminderStateException


@dataclass(frozen=True)
class Reminder:
    """
    Reminder entity.

    Lifecycle:
    - active -> overdue once the due time has passed (sweep only)
    - active / overdue -> snoozed until a given time
    - snoozed -> active once the snooze has expired (sweep only)
    - any -> completed, which is terminal
    """

    id: str
    message: str
    due_at: datetime
    created_at: datetime
    type: ReminderType = ReminderType.GENERAL
    priority: ReminderPriority = ReminderPriority.MEDIUM
    status: ReminderStatus = ReminderStatus.ACTIVE
    related_id: Optional[str] = None
    related_reference: Optional[str] = None
    created_by: str = "system"
    snoozed_until: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def new(cls, message: str, due_at: datetime, created_at: datetime, **fields) -> "Reminder":
        return cls(
            id=f"reminder-{uuid4().hex}",
            message=message,
            due_at=due_at,
            created_at=created_at,
            status=ReminderStatus.ACTIVE,
            **fields,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status == ReminderStatus.COMPLETED

    def complete(self, at: datetime) -> "Reminder":
        if self.is_terminal:
            raise ReminderStateException(self.id, self.status.value, "complete")
        return replace(self, status=ReminderStatus.COMPLETED, completed_at=at, snoozed_until=None)

    def snooze(self, until: datetime) -> "Reminder":
        if self.is_terminal:
            raise ReminderStateException(self.id, self.status.value, "snooze")
        return replace(self, status=ReminderStatus.SNOOZED, snoozed_until=until)

    def reactivate(self) -> "Reminder":
        """Back to active, e.g. after its due time was moved forward."""
        if self.is_terminal:
            raise ReminderStateException(self.id, self.status.value, "reactivate")
        return replace(self, status=ReminderStatus.ACTIVE, snoozed_until=None)

    def edit(self, **changes) -> "Reminder":
        """Change message, due time, priority or links; never the status."""
        if self.is_terminal:
            raise ReminderStateException(self.id, self.status.value, "edit")
        return replace(self, **changes)
