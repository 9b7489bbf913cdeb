"""
Configuration Module
====================

Environment-driven settings (pydantic-settings) and the enums shared by
every bounded context.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="jobwatch", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Local store ==========
    database_url: str = Field(
        default="sqlite+aiosqlite:///jobwatch.db",
        description="Client-local SQLite store URL (async)"
    )

    # ========== SLA Configuration ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA configuration YAML file"
    )
    tick_interval_seconds: int = Field(
        default=60,
        description="Seconds between engine ticks (overridden by the YAML file when set there)",
        ge=0
    )

    # ========== Slack Integration ==========
    slack_webhook_url: Optional[str] = Field(
        default=None,
        description="Slack webhook URL for notifications"
    )
    slack_channel: str = Field(
        default="#ooh-escalations",
        description="Slack channel for SLA notifications"
    )
    slack_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for Slack API calls",
        ge=0.1,
        le=30
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Priority(str, Enum):
    """Job priority levels."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Milestone(str, Enum):
    """Job lifecycle milestones, in the order they must be recorded."""
    LOGGED = "logged"
    ACCEPTED = "accepted"
    ON_SITE = "on_site"
    COMPLETED = "completed"


class LifecycleStage(str, Enum):
    """Stage of the job lifecycle an SLA budget applies to."""
    ACCEPTANCE = "acceptance"
    ON_SITE_ARRIVAL = "on-site arrival"
    COMPLETION = "completion"


class CompletionAnchor(str, Enum):
    """Milestone the completion budget is measured from."""
    ON_SITE = "on_site"
    LOGGED = "logged"


class SLAState(str, Enum):
    """SLA status states."""
    ON_TRACK = "on_track"
    BREACHED = "breached"


class LegacyStatus(str, Enum):
    """Traffic-light labels used by the portal views."""
    GREEN = "green"
    AMBER = "amber"
    RED = "red"


class ReminderStatus(str, Enum):
    """Reminder lifecycle statuses."""
    ACTIVE = "active"
    OVERDUE = "overdue"
    COMPLETED = "completed"
    SNOOZED = "snoozed"


class ReminderType(str, Enum):
    """What a reminder is attached to."""
    JOB = "job"
    TICKET = "ticket"
    GENERAL = "general"
    NOTE = "note"


class ReminderPriority(str, Enum):
    """Reminder priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NotificationType(str, Enum):
    """User-facing notification types."""
    SLA_BREACH = "sla_breach"
    REMINDER_DUE = "reminder_due"


class RelatedType(str, Enum):
    """Entity kinds a notification can point at."""
    JOB = "job"
    TICKET = "ticket"
    REMINDER = "reminder"


class TimelineEntryType(str, Enum):
    """Job timeline (audit trail) entry types."""
    JOB_CREATED = "job_created"
    MILESTONE_RECORDED = "milestone_recorded"
    MILESTONE_CORRECTED = "milestone_corrected"
    POLICY_UPDATED = "policy_updated"
    SLA_BREACHED = "sla_breached"
    SLA_CLEARED = "sla_cleared"


# ========== Lists for validation ==========

VALID_PRIORITIES = [p.value for p in Priority]
MILESTONE_ORDER = [
    Milestone.LOGGED, Milestone.ACCEPTED,
    Milestone.ON_SITE, Milestone.COMPLETED
]
VALID_REMINDER_STATUSES = [s.value for s in ReminderStatus]
