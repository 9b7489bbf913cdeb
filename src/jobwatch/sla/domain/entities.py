"""
SLA Domain Entities
====================

Pure Python domain entities for SLA monitoring.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from jobwatch.config import (
    LifecycleStage, Milestone, MILESTONE_ORDER, Priority, SLAState
)
from jobwatch.core import MilestoneOrderException, PolicyLockedException
from jobwatch.sla.domain.value_objects import SLAStatus, SlaPolicy


@dataclass(frozen=True)
class JobMilestones:
    """
    Lifecycle timestamps of a job.

    ``logged`` is always set at creation. The others are recorded once each,
    in order, and never unset. Missing values mean "not reached yet".
    """
    logged: datetime
    accepted: Optional[datetime] = None
    on_site: Optional[datetime] = None
    completed: Optional[datetime] = None

    def get(self, milestone: Milestone) -> Optional[datetime]:
        return getattr(self, milestone.value)

    @property
    def is_completed(self) -> bool:
        return self.completed is not None

    def with_milestone(self, milestone: Milestone, timestamp: datetime) -> "JobMilestones":
        return replace(self, **{milestone.value: timestamp})

    def validate(self) -> "JobMilestones":
        """
        Check ordering. Called at the write boundary, never by the evaluator.

        Raises:
            MilestoneOrderException: on a skipped predecessor or a timestamp
                earlier than its predecessor
        """
        previous: Optional[datetime] = self.logged
        previous_name = Milestone.LOGGED
        for milestone in MILESTONE_ORDER[1:]:
            value = self.get(milestone)
            if value is None:
                previous, previous_name = None, milestone
                continue
            if previous is None:
                raise MilestoneOrderException(
                    milestone.value, f"'{previous_name.value}' has not been recorded"
                )
            if value < previous:
                raise MilestoneOrderException(
                    milestone.value, f"timestamp is earlier than '{previous_name.value}'"
                )
            previous, previous_name = value, milestone
        return self


@dataclass
class Job:
    """
    Job entity tracked by the escalation engine.

    Carries the ground truth (milestones + policy) and a display snapshot
    of the last computed status. The snapshot is never used as input to
    an evaluation.
    """

    id: str
    job_number: str
    customer: str
    site: str
    priority: Priority
    milestones: JobMilestones
    policy: SlaPolicy
    engineer: Optional[str] = None
    description: str = ""
    is_emergency: bool = False

    # Display snapshot
    last_state: SLAState = SLAState.ON_TRACK
    last_stage: Optional[LifecycleStage] = None
    last_reason: Optional[str] = None

    # Audit flag, independent of the displayed status
    was_breached: bool = False
    first_breached_stage: Optional[LifecycleStage] = None

    @property
    def is_completed(self) -> bool:
        return self.milestones.is_completed

    @property
    def last_status(self) -> SLAStatus:
        """Snapshot as an SLAStatus, used as the emitter's "previous" value."""
        return SLAStatus(
            state=self.last_state,
            stage=self.last_stage,
            reason=self.last_reason
        )

    def apply_status(self, status: SLAStatus) -> None:
        """Store a freshly computed status in the display snapshot."""
        self.last_state = status.state
        self.last_stage = status.stage
        self.last_reason = status.reason
        if status.is_breached:
            self.mark_breached(status.stage)

    def mark_breached(self, stage: LifecycleStage) -> None:
        if not self.was_breached:
            self.was_breached = True
            self.first_breached_stage = stage

    def record_milestone(self, milestone: Milestone, timestamp: datetime) -> JobMilestones:
        """Set a milestone that has not been reached yet."""
        if milestone == Milestone.LOGGED:
            raise MilestoneOrderException(milestone.value, "set when the job is created")
        if self.milestones.get(milestone) is not None:
            raise MilestoneOrderException(milestone.value, "already recorded")
        self.milestones = self.milestones.with_milestone(milestone, timestamp).validate()
        return self.milestones

    def correct_milestone(self, milestone: Milestone, timestamp: datetime) -> JobMilestones:
        """Move an already recorded milestone, keeping the order intact."""
        if self.milestones.get(milestone) is None:
            raise MilestoneOrderException(milestone.value, "cannot correct a milestone that was never recorded")
        self.milestones = self.milestones.with_milestone(milestone, timestamp).validate()
        return self.milestones

    def update_policy(self, policy: SlaPolicy) -> SlaPolicy:
        if self.is_completed:
            raise PolicyLockedException(self.id)
        self.policy = policy.validate()
        return self.policy
