"""
SLA Application DTOs
=====================

Data Transfer Objects for SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses. Legacy traffic-light labels only exist here.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from jobwatch.config import LegacyStatus
from jobwatch.sla.domain import Job, SLAStatus


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["critical", "high", "medium", "low"]
CompletionAnchorStr = Literal["on_site", "logged"]
MilestoneStr = Literal["accepted", "on_site", "completed"]
SLAStateStr = Literal["on_track", "breached"]


def to_legacy_label(status: SLAStatus, completed: bool) -> LegacyStatus:
    """
    Map a status onto the portal's traffic-light label.

    completed -> green, breached -> red, anything else -> amber.
    """
    if completed:
        return LegacyStatus.GREEN
    if status.is_breached:
        return LegacyStatus.RED
    return LegacyStatus.AMBER


# ========== Request DTOs ==========

class PolicyDTO(BaseModel):
    """SLA budgets in minutes."""
    accept_within: int = Field(..., ge=0, description="Minutes from logging to acceptance")
    on_site_within: int = Field(..., ge=0, description="Minutes from acceptance to arrival")
    complete_within: int = Field(..., ge=0, description="Minutes from the anchor to completion")
    completion_anchor: CompletionAnchorStr = Field(
        default="on_site",
        description="Measure completion from arrival on site or from logging"
    )


class JobCreateDTO(BaseModel):
    """DTO for logging a new job."""
    job_number: Optional[str] = Field(None, min_length=1, max_length=64)
    customer: str = Field(..., min_length=1)
    site: str = Field(..., min_length=1)
    engineer: Optional[str] = None
    priority: PriorityStr = Field(default="medium")
    description: str = Field(default="")
    is_emergency: bool = Field(default=False)
    logged_at: Optional[datetime] = Field(None, description="Defaults to the current time")
    policy: Optional[PolicyDTO] = Field(None, description="Overrides the priority defaults")


class MilestoneWriteDTO(BaseModel):
    """DTO for recording or correcting a milestone."""
    timestamp: Optional[datetime] = Field(None, description="Defaults to the current time")


class MilestoneCorrectionDTO(BaseModel):
    """DTO for moving an already recorded milestone."""
    timestamp: datetime = Field(..., description="Corrected time of the milestone")


class DashboardQueryDTO(BaseModel):
    """Query parameters for dashboard endpoint."""
    priority: Optional[PriorityStr] = None
    sla_state: Optional[SLAStateStr] = None
    include_completed: bool = True
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)


# ========== Response DTOs ==========

class SLAStatusResponse(BaseModel):
    """Live status of one job."""
    state: SLAStateStr
    legacy_status: str
    stage: Optional[str] = None
    reason: Optional[str] = None
    deadline: Optional[datetime] = None
    remaining_seconds: float = 0.0

    @classmethod
    def from_domain(cls, status: SLAStatus, completed: bool) -> "SLAStatusResponse":
        return cls(
            state=status.state.value,
            legacy_status=to_legacy_label(status, completed).value,
            stage=status.stage.value if status.stage else None,
            reason=status.reason,
            deadline=status.deadline,
            remaining_seconds=status.remaining_seconds,
        )


class JobResponse(BaseModel):
    """Response model for a job and its live status."""
    id: str
    job_number: str
    customer: str
    site: str
    engineer: Optional[str] = None
    priority: str
    description: str
    is_emergency: bool
    logged_at: datetime
    accepted_at: Optional[datetime] = None
    on_site_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    policy: PolicyDTO
    status: SLAStatusResponse
    was_breached: bool
    first_breached_stage: Optional[str] = None

    @classmethod
    def from_domain(cls, job: Job, status: SLAStatus) -> "JobResponse":
        return cls(
            id=job.id,
            job_number=job.job_number,
            customer=job.customer,
            site=job.site,
            engineer=job.engineer,
            priority=job.priority.value,
            description=job.description,
            is_emergency=job.is_emergency,
            logged_at=job.milestones.logged,
            accepted_at=job.milestones.accepted,
            on_site_at=job.milestones.on_site,
            completed_at=job.milestones.completed,
            policy=PolicyDTO(
                accept_within=job.policy.accept_within,
                on_site_within=job.policy.on_site_within,
                complete_within=job.policy.complete_within,
                completion_anchor=job.policy.completion_anchor.value,
            ),
            status=SLAStatusResponse.from_domain(status, job.is_completed),
            was_breached=job.was_breached,
            first_breached_stage=job.first_breached_stage.value if job.first_breached_stage else None,
        )


class DashboardSummary(BaseModel):
    """Counts for the dashboard header."""
    total: int = 0
    on_track: int = 0
    breached: int = 0
    completed: int = 0
    green: int = 0
    amber: int = 0
    red: int = 0
    breach_rate: float = Field(0.0, description="Share of jobs that ever breached")


class DashboardResponse(BaseModel):
    """Response model for SLA dashboard."""
    jobs: List[JobResponse] = Field(default_factory=list)
    summary: DashboardSummary = Field(default_factory=DashboardSummary)
