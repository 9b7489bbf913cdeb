"""
SLA Value Objects
==================

Immutable value objects for SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from jobwatch.config import (
    CompletionAnchor, LifecycleStage, Priority, SLAState, VALID_PRIORITIES
)
from jobwatch.core import InvalidPolicyException


@dataclass(frozen=True)
class SlaPolicy:
    """
    Time budgets (minutes) for one job.

    - accept_within is measured from ``logged``
    - on_site_within is measured from ``accepted``
    - complete_within is measured from ``on_site``, or from ``logged`` when
      completion_anchor is LOGGED
    """
    accept_within: int
    on_site_within: int
    complete_within: int
    completion_anchor: CompletionAnchor = CompletionAnchor.ON_SITE

    def validate(self) -> "SlaPolicy":
        """Reject negative budgets. Called at the write boundary only."""
        for name in ("accept_within", "on_site_within", "complete_within"):
            value = getattr(self, name)
            if value < 0:
                raise InvalidPolicyException(name, value)
        return self

    def budget(self, stage: LifecycleStage) -> timedelta:
        minutes = {
            LifecycleStage.ACCEPTANCE: self.accept_within,
            LifecycleStage.ON_SITE_ARRIVAL: self.on_site_within,
            LifecycleStage.COMPLETION: self.complete_within,
        }[stage]
        return timedelta(minutes=minutes)


@dataclass(frozen=True)
class SLAStatus:
    """
    Derived status of a job at one instant.

    Never stored as ground truth; always recomputed from milestones,
    policy and the current time.
    """
    state: SLAState
    stage: Optional[LifecycleStage] = None
    reason: Optional[str] = None
    deadline: Optional[datetime] = None
    remaining_seconds: float = 0.0

    @property
    def is_breached(self) -> bool:
        return self.state == SLAState.BREACHED

    @classmethod
    def on_track(
        cls,
        deadline: Optional[datetime] = None,
        remaining_seconds: float = 0.0
    ) -> "SLAStatus":
        return cls(
            state=SLAState.ON_TRACK,
            deadline=deadline,
            remaining_seconds=remaining_seconds
        )

    @classmethod
    def breached(
        cls,
        stage: LifecycleStage,
        reason: str,
        deadline: Optional[datetime] = None
    ) -> "SLAStatus":
        return cls(
            state=SLAState.BREACHED,
            stage=stage,
            reason=reason,
            deadline=deadline,
            remaining_seconds=0.0
        )


_REASONS = {
    LifecycleStage.ACCEPTANCE: "Job not accepted within {minutes} minutes of logging",
    LifecycleStage.ON_SITE_ARRIVAL: "Engineer not on site within {minutes} minutes of acceptance",
}


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all status inference lives here so it can be
    tested without timers, storage or a rendering layer.
    """

    @staticmethod
    def evaluate(policy: SlaPolicy, milestones, now: datetime) -> SLAStatus:
        """
        Compute the current status of a job.

        Stages are checked in lifecycle order and the first breach wins.
        A completed job is always on track. Elapsed times that come out
        non-positive (clock moved backwards) never breach.

        Args:
            policy: The job's SLA policy
            milestones: The job's recorded milestones
            now: Evaluation instant

        Returns:
            SLAStatus for ``now``
        """
        if milestones.completed is not None:
            return SLAStatus.on_track()

        if milestones.on_site is None:
            if milestones.accepted is None:
                stage = LifecycleStage.ACCEPTANCE
                anchor = milestones.logged
            else:
                stage = LifecycleStage.ON_SITE_ARRIVAL
                anchor = milestones.accepted
        else:
            stage = LifecycleStage.COMPLETION
            if policy.completion_anchor == CompletionAnchor.LOGGED:
                anchor = milestones.logged
            else:
                anchor = milestones.on_site

        budget = policy.budget(stage)
        deadline = anchor + budget

        if now - anchor > budget:
            return SLAStatus.breached(
                stage,
                SLACalculator.breach_reason(policy, stage),
                deadline
            )

        remaining = (deadline - now).total_seconds()
        return SLAStatus.on_track(deadline, max(0.0, remaining))

    @staticmethod
    def breach_reason(policy: SlaPolicy, stage: LifecycleStage) -> str:
        minutes = int(policy.budget(stage).total_seconds() // 60)
        if stage == LifecycleStage.COMPLETION:
            origin = "logging" if policy.completion_anchor == CompletionAnchor.LOGGED else "arrival on site"
            return f"Work not completed within {minutes} minutes of {origin}"
        return _REASONS[stage].format(minutes=minutes)

    @staticmethod
    def is_new_breach(previous: SLAStatus, current: SLAStatus) -> bool:
        """
        Whether ``current`` is a breach that has not been reported yet.

        A breach persisting at the same stage is not new.
        """
        if not current.is_breached:
            return False
        return not previous.is_breached or previous.stage != current.stage


evaluate = SLACalculator.evaluate


class SlaTargets(BaseModel):
    """Default budgets (minutes) for one priority."""
    accept_within: int = Field(ge=0)
    on_site_within: int = Field(ge=0)
    complete_within: int = Field(ge=0)


DEFAULT_SLA_TARGETS: Dict[str, Dict[str, int]] = {
    Priority.CRITICAL.value: {"accept_within": 10, "on_site_within": 30, "complete_within": 60},
    Priority.HIGH.value: {"accept_within": 20, "on_site_within": 60, "complete_within": 120},
    Priority.MEDIUM.value: {"accept_within": 20, "on_site_within": 90, "complete_within": 180},
    Priority.LOW.value: {"accept_within": 60, "on_site_within": 180, "complete_within": 240},
}

DEFAULT_EMERGENCY_TARGETS = {"accept_within": 5, "on_site_within": 15, "complete_within": 30}


class SLAConfig(BaseModel):
    """
    SLA Configuration loaded from YAML.

    Holds the defaults a new job's policy is built from. Existing jobs keep
    the policy they were created with until an operator edits it.
    """
    sla_targets: Dict[str, SlaTargets] = Field(
        default_factory=dict,
        validate_default=True,
        description="Default budgets in minutes by priority"
    )
    emergency_targets: SlaTargets = Field(
        default_factory=lambda: SlaTargets(**DEFAULT_EMERGENCY_TARGETS),
        description="Reduced budgets applied to emergency jobs"
    )
    completion_anchor: CompletionAnchor = Field(
        default=CompletionAnchor.ON_SITE,
        description="Milestone the completion budget is measured from"
    )
    tick_interval_seconds: Optional[int] = Field(
        default=None,
        ge=1,
        description="Engine tick cadence; falls back to the environment setting"
    )

    @field_validator("sla_targets", mode="before")
    @classmethod
    def fill_sla_targets(cls, v: Optional[dict]) -> dict:
        """Fill in any priority the file leaves out."""
        v = dict(v or {})
        for priority in VALID_PRIORITIES:
            if priority not in v:
                v[priority] = DEFAULT_SLA_TARGETS[priority]
        return v

    def targets_for(self, priority: str, is_emergency: bool = False) -> SlaTargets:
        if is_emergency:
            return self.emergency_targets
        key = priority.value if isinstance(priority, Priority) else priority
        # unknown priorities get the medium budgets
        return self.sla_targets.get(key) or self.sla_targets[Priority.MEDIUM.value]

    def policy_for(self, priority: str, is_emergency: bool = False) -> SlaPolicy:
        """
        Build the default policy for a new job.

        Example:
            Priority "high", not an emergency -> 20 / 60 / 120 minutes
        """
        targets = self.targets_for(priority, is_emergency)
        return SlaPolicy(
            accept_within=targets.accept_within,
            on_site_within=targets.on_site_within,
            complete_within=targets.complete_within,
            completion_anchor=self.completion_anchor,
        )
