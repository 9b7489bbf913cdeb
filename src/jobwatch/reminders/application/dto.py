"""
Reminder Application DTOs
=========================

Request and response models for reminder endpoints.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from jobwatch.reminders.domain import Reminder

ReminderTypeStr = Literal["job", "ticket", "general", "note"]
ReminderPriorityStr = Literal["low", "medium", "high"]
ReminderStatusStr = Literal["active", "overdue", "completed", "snoozed"]


# ========== Request DTOs ==========

class ReminderCreateDTO(BaseModel):
    """DTO for creating a reminder."""
    message: str = Field(..., min_length=1)
    due_at: datetime
    type: ReminderTypeStr = "general"
    priority: ReminderPriorityStr = "medium"
    related_id: Optional[str] = None
    related_reference: Optional[str] = Field(None, description="Job or ticket number shown to users")
    created_by: str = Field(default="system", min_length=1)


class ReminderUpdateDTO(BaseModel):
    """DTO for editing a reminder. Status changes have their own endpoints."""
    message: Optional[str] = Field(None, min_length=1)
    due_at: Optional[datetime] = None
    type: Optional[ReminderTypeStr] = None
    priority: Optional[ReminderPriorityStr] = None
    related_id: Optional[str] = None
    related_reference: Optional[str] = None


class SnoozeDTO(BaseModel):
    """Snooze until a given time, or for a number of minutes from now."""
    until: Optional[datetime] = None
    minutes: Optional[int] = Field(None, ge=1, le=60 * 24 * 30)

    @model_validator(mode="after")
    def exactly_one(self) -> "SnoozeDTO":
        if (self.until is None) == (self.minutes is None):
            raise ValueError("Provide exactly one of 'until' or 'minutes'")
        return self


# ========== Response DTOs ==========

class ReminderResponse(BaseModel):
    """Response model for one reminder."""
    id: str
    type: str
    message: str
    priority: str
    status: str
    due_at: datetime
    created_at: datetime
    created_by: str
    related_id: Optional[str] = None
    related_reference: Optional[str] = None
    snoozed_until: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, reminder: Reminder) -> "ReminderResponse":
        return cls(
            id=reminder.id,
            type=reminder.type.value,
            message=reminder.message,
            priority=reminder.priority.value,
            status=reminder.status.value,
            due_at=reminder.due_at,
            created_at=reminder.created_at,
            created_by=reminder.created_by,
            related_id=reminder.related_id,
            related_reference=reminder.related_reference,
            snoozed_until=reminder.snoozed_until,
            completed_at=reminder.completed_at,
        )


class ReminderListResponse(BaseModel):
    reminders: List[ReminderResponse] = Field(default_factory=list)
    total: int = 0
