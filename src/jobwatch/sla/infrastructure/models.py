"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for SLA module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from jobwatch.config import CompletionAnchor, Priority, SLAState
from jobwatch.shared.infrastructure.database import Base, UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobModel(Base):
    """
    Database model for Job entity.

    Maps to the 'jobs' table.
    """
    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    job_number: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)

    customer: Mapped[str] = mapped_column(String(255), nullable=False)
    site: Mapped[str] = mapped_column(String(255), nullable=False)
    engineer: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default=Priority.MEDIUM.value)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_emergency: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Milestones
    logged_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    on_site_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, index=True)

    # Policy (minutes)
    accept_within: Mapped[int] = mapped_column(Integer, nullable=False)
    on_site_within: Mapped[int] = mapped_column(Integer, nullable=False)
    complete_within: Mapped[int] = mapped_column(Integer, nullable=False)
    completion_anchor: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CompletionAnchor.ON_SITE.value
    )

    # Display snapshot, never read back into an evaluation
    last_state: Mapped[str] = mapped_column(String(20), nullable=False, default=SLAState.ON_TRACK.value)
    last_stage: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    last_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Audit flag
    was_breached: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    first_breached_stage: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
