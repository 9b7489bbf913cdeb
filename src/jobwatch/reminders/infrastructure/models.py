"""
Reminder Infrastructure Models
==============================

SQLAlchemy ORM model for reminders.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from jobwatch.config import ReminderPriority, ReminderStatus, ReminderType
from jobwatch.shared.infrastructure.database import Base, UTCDateTime


class ReminderModel(Base):
    """
    Database model for Reminder entity.

    Maps to the 'reminders' table.
    """
    __tablename__ = "reminders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=ReminderType.GENERAL.value)
    related_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    related_reference: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default=ReminderPriority.MEDIUM.value)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReminderStatus.ACTIVE.value, index=True
    )
    due_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    snoozed_until: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False, default="system")
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
