"""
Reminder Scheduler
==================

One sweep flips due reminders to overdue and wakes expired snoozes.
Pure: the caller persists the returned reminders and notifications.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, List

from jobwatch.config import NotificationType, RelatedType, ReminderStatus
from jobwatch.notifications.domain import Notification
from jobwatch.reminders.domain.entities import Reminder


@dataclass
class SweepResult:
    """Reminders that changed in this sweep and the notifications they raised."""
    updated: List[Reminder] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)


class ReminderScheduler:
    """Stateless overdue / snooze evaluation over a set of reminders."""

    @staticmethod
    def sweep(reminders: Iterable[Reminder], now: datetime) -> SweepResult:
        """
        Run one pass.

        - active and past due: becomes overdue, one notification
        - snoozed and snooze expired: becomes active again; the due check
          happens on the next sweep
        - overdue and completed reminders are left alone, so a repeated
          sweep with the same ``now`` changes nothing
        """
        result = SweepResult()

        for reminder in reminders:
            if reminder.status == ReminderStatus.ACTIVE and now > reminder.due_at:
                result.updated.append(replace(reminder, status=ReminderStatus.OVERDUE))
                result.notifications.append(Notification.create(
                    type=NotificationType.REMINDER_DUE,
                    title="Reminder Overdue",
                    message=reminder.message,
                    timestamp=now,
                    related_id=reminder.id,
                    related_type=RelatedType.REMINDER,
                ))
            elif (
                reminder.status == ReminderStatus.SNOOZED
                and (reminder.snoozed_until is None or now >= reminder.snoozed_until)
            ):
                result.updated.append(
                    replace(reminder, status=ReminderStatus.ACTIVE, snoozed_until=None)
                )

        return result


sweep = ReminderScheduler.sweep
