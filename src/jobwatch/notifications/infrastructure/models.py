"""
Notification Infrastructure Models
==================================

SQLAlchemy ORM models for the notification list and the job timeline.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from jobwatch.shared.infrastructure.database import Base, UTCDateTime


class NotificationModel(Base):
    """
    Database model for Notification entity.

    Maps to the 'notifications' table.
    """
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    related_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    related_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)


class TimelineEntryModel(Base):
    """
    Database model for TimelineEntry entity.

    Maps to the 'timeline_entries' table.
    """
    __tablename__ = "timeline_entries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    job_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    details: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
