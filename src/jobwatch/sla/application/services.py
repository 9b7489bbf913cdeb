"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

- JobService: the write boundary for jobs (create, milestone writes,
  policy edits) plus the dashboard read model.
- EscalationService: the per-tick pass over the whole working set.

Both take the clock as a dependency and never read a global "now".
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import uuid4

from jobwatch.config import (
    CompletionAnchor, MILESTONE_ORDER, Milestone, Priority, SLAState, TimelineEntryType
)
from jobwatch.core import ResourceNotFoundException, ValidationException
from jobwatch.notifications.application.services import (
    INotificationRepository, ITimelineRepository
)
from jobwatch.notifications.domain import Notification, TimelineEntry
from jobwatch.shared.clock import Clock, ensure_utc, utc_now
from jobwatch.shared.infrastructure.logging import get_logger
from jobwatch.sla.application.dto import (
    DashboardQueryDTO, DashboardSummary, JobCreateDTO, PolicyDTO, to_legacy_label
)
from jobwatch.sla.domain import (
    BreachEmitter, Emission, Job, JobMilestones, JobRef, SLAConfig, SLAStatus,
    SlaPolicy, evaluate
)

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IJobRepository(ABC):
    """Interface for job data access."""

    @abstractmethod
    async def get(self, job_id: str) -> Optional[Job]:
        """Get job by ID."""

    @abstractmethod
    async def get_by_number(self, job_number: str) -> Optional[Job]:
        """Get job by its human-readable number."""

    @abstractmethod
    async def list_all(self) -> List[Job]:
        """Whole working set, oldest first."""

    @abstractmethod
    async def add(self, job: Job) -> Job:
        """Create new job."""

    @abstractmethod
    async def save(self, job: Job) -> Job:
        """Persist milestones, policy, snapshot and audit flag."""

    @abstractmethod
    async def write_status(self, job: Job) -> None:
        """Persist only the display snapshot and audit flag."""


class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""


# ========== Helpers ==========

def generate_job_number(now: datetime) -> str:
    """Readable job number, e.g. ``JOB-261016-3F9A2C``."""
    return f"JOB-{now:%y%m%d}-{uuid4().hex[:6].upper()}"


def policy_from_dto(dto: PolicyDTO) -> SlaPolicy:
    return SlaPolicy(
        accept_within=dto.accept_within,
        on_site_within=dto.on_site_within,
        complete_within=dto.complete_within,
        completion_anchor=CompletionAnchor(dto.completion_anchor),
    )


def _policy_details(policy: SlaPolicy) -> dict:
    return {
        "accept_within": policy.accept_within,
        "on_site_within": policy.on_site_within,
        "complete_within": policy.complete_within,
        "completion_anchor": policy.completion_anchor.value,
    }


def _milestones_before(milestones: JobMilestones, milestone: Milestone) -> JobMilestones:
    """The milestones as they stood before ``milestone`` was reached."""
    index = MILESTONE_ORDER.index(milestone)
    return replace(milestones, **{m.value: None for m in MILESTONE_ORDER[index:]})


def _snapshot_changed(job: Job, status: SLAStatus) -> bool:
    return (job.last_state, job.last_stage, job.last_reason) != (
        status.state, status.stage, status.reason
    )


# ========== Application Services ==========

class JobService:
    """
    Write boundary and read model for jobs.

    Every write validates first, then re-evaluates the job at the current
    time and runs the emitter against the stored snapshot, so the caller
    sees the consequence of its write immediately.
    """

    def __init__(
        self,
        job_repository: IJobRepository,
        timeline_repository: ITimelineRepository,
        notification_repository: INotificationRepository,
        config_provider: ISLAConfigProvider,
        clock: Clock = utc_now,
        emitter: Optional[BreachEmitter] = None
    ):
        self._job_repo = job_repository
        self._timeline_repo = timeline_repository
        self._notification_repo = notification_repository
        self._config_provider = config_provider
        self._clock = clock
        self._emitter = emitter or BreachEmitter()
        self.emitted: List[Notification] = []

    # ----- writes -----

    async def create_job(self, dto: JobCreateDTO) -> Tuple[Job, SLAStatus]:
        """
        Log a new job.

        The policy comes from the request when given, otherwise from the
        configured defaults for the job's priority.

        Raises:
            ValidationException: duplicate job number, invalid policy
        """
        now = self._clock()
        priority = Priority(dto.priority)

        if dto.policy is not None:
            policy = policy_from_dto(dto.policy)
        else:
            policy = self._config_provider.get_config().policy_for(priority, dto.is_emergency)
        policy.validate()

        job_number = dto.job_number or generate_job_number(now)
        if await self._job_repo.get_by_number(job_number) is not None:
            raise ValidationException(
                f"Job number '{job_number}' already exists",
                details={"job_number": job_number}
            )

        job = Job(
            id=f"job-{uuid4().hex}",
            job_number=job_number,
            customer=dto.customer,
            site=dto.site,
            engineer=dto.engineer,
            priority=priority,
            description=dto.description,
            is_emergency=dto.is_emergency,
            milestones=JobMilestones(logged=ensure_utc(dto.logged_at) if dto.logged_at else now),
            policy=policy,
        )
        await self._job_repo.add(job)

        created = TimelineEntry.create(
            job_id=job.id,
            type=TimelineEntryType.JOB_CREATED,
            description=f"Job {job.job_number} logged for {job.customer} at {job.site}",
            timestamp=now,
            details={"priority": priority.value, "is_emergency": job.is_emergency,
                     "policy": _policy_details(policy)},
        )
        status = await self._refresh(job, now, [created])

        logger.info(
            "Job created",
            extra={"job_id": job.id, "job_number": job.job_number, "priority": priority.value}
        )
        return job, status

    async def record_milestone(
        self,
        job_id: str,
        milestone: Milestone,
        timestamp: Optional[datetime] = None
    ) -> Tuple[Job, SLAStatus]:
        """
        Record a milestone that has not been reached yet.

        Raises:
            ResourceNotFoundException: unknown job
            MilestoneOrderException: skipped predecessor, earlier timestamp,
                or milestone already recorded
        """
        now = self._clock()
        at = ensure_utc(timestamp) if timestamp else now
        job = await self._require(job_id)

        before = _milestones_before(job.milestones, milestone) if milestone != Milestone.LOGGED else None
        job.record_milestone(milestone, at)
        self._flag_late_write(job, before, at)

        entry = self._emitter.milestone_entry(self._ref(job), milestone, at, now)
        status = await self._refresh(job, now, [entry])

        logger.info(
            "Milestone recorded",
            extra={"job_id": job.id, "milestone": milestone.value, "sla_state": status.state.value}
        )
        return job, status

    async def correct_milestone(
        self,
        job_id: str,
        milestone: Milestone,
        timestamp: datetime
    ) -> Tuple[Job, SLAStatus]:
        """
        Move an already recorded milestone.

        The audit flag is never cleared by a correction.
        """
        now = self._clock()
        at = ensure_utc(timestamp)
        job = await self._require(job_id)

        previous_timestamp = job.milestones.get(milestone)
        before = _milestones_before(job.milestones, milestone) if milestone != Milestone.LOGGED else None
        job.correct_milestone(milestone, at)
        self._flag_late_write(job, before, at)

        entry = self._emitter.milestone_entry(
            self._ref(job), milestone, at, now, previous_timestamp=previous_timestamp
        )
        status = await self._refresh(job, now, [entry])

        logger.info(
            "Milestone corrected",
            extra={"job_id": job.id, "milestone": milestone.value, "sla_state": status.state.value}
        )
        return job, status

    async def update_policy(self, job_id: str, dto: PolicyDTO) -> Tuple[Job, SLAStatus]:
        """
        Replace a job's SLA policy.

        Raises:
            PolicyLockedException: the job is completed
            InvalidPolicyException: negative budget
        """
        now = self._clock()
        job = await self._require(job_id)

        old = job.policy
        job.update_policy(policy_from_dto(dto))

        entry = TimelineEntry.create(
            job_id=job.id,
            type=TimelineEntryType.POLICY_UPDATED,
            description="SLA policy updated",
            timestamp=now,
            details={"old": _policy_details(old), "new": _policy_details(job.policy)},
        )
        status = await self._refresh(job, now, [entry])

        logger.info("Policy updated", extra={"job_id": job.id, "sla_state": status.state.value})
        return job, status

    # ----- reads -----

    async def get_job(self, job_id: str) -> Tuple[Job, SLAStatus]:
        """Job with its live status (never the stored snapshot)."""
        job = await self._require(job_id)
        return job, evaluate(job.policy, job.milestones, self._clock())

    async def timeline(self, job_id: str) -> List[TimelineEntry]:
        await self._require(job_id)
        return await self._timeline_repo.list_for_job(job_id)

    async def dashboard(
        self,
        query: DashboardQueryDTO
    ) -> Tuple[List[Tuple[Job, SLAStatus]], DashboardSummary]:
        """
        Filtered jobs with live status, plus summary counts over the whole
        filtered set (before pagination).
        """
        now = self._clock()
        rows = []
        for job in await self._job_repo.list_all():
            if query.priority and job.priority.value != query.priority:
                continue
            if not query.include_completed and job.is_completed:
                continue
            status = evaluate(job.policy, job.milestones, now)
            if query.sla_state and status.state.value != query.sla_state:
                continue
            rows.append((job, status))

        summary = DashboardSummary(total=len(rows))
        ever_breached = 0
        for job, status in rows:
            if job.is_completed:
                summary.completed += 1
            if status.is_breached:
                summary.breached += 1
            else:
                summary.on_track += 1
            label = to_legacy_label(status, job.is_completed).value
            setattr(summary, label, getattr(summary, label) + 1)
            if job.was_breached:
                ever_breached += 1
        if rows:
            summary.breach_rate = round(ever_breached / len(rows), 4)

        return rows[query.offset:query.offset + query.limit], summary

    # ----- internals -----

    async def _require(self, job_id: str) -> Job:
        job = await self._job_repo.get(job_id)
        if job is None:
            raise ResourceNotFoundException("Job", job_id)
        return job

    @staticmethod
    def _ref(job: Job) -> JobRef:
        return JobRef(job_id=job.id, job_number=job.job_number, completed=job.is_completed)

    @staticmethod
    def _flag_late_write(job: Job, before: Optional[JobMilestones], at: datetime) -> None:
        """Set the audit flag when a milestone arrived after its deadline."""
        if before is None:
            return
        late = evaluate(job.policy, before, at)
        if late.is_breached:
            job.mark_breached(late.stage)

    async def _refresh(self, job: Job, now: datetime, entries: List[TimelineEntry]) -> SLAStatus:
        status = evaluate(job.policy, job.milestones, now)
        emission = self._emitter.on_tick(job.last_status, status, self._ref(job), now)
        job.apply_status(status)

        await self._job_repo.save(job)
        await self._timeline_repo.append(entries + emission.timeline)
        if emission.notifications:
            await self._notification_repo.append(emission.notifications)
            self.emitted.extend(emission.notifications)
        return status


@dataclass
class EscalationOutcome:
    """Result of one pass over the jobs."""
    evaluated: int = 0
    changed: int = 0
    breached: int = 0
    emission: Emission = field(default_factory=Emission)


class EscalationService:
    """
    Re-evaluates every job at one instant.

    Only jobs whose snapshot differs from the fresh status are written.
    Nothing is committed here; the caller owns the transaction.
    """

    def __init__(
        self,
        job_repository: IJobRepository,
        timeline_repository: ITimelineRepository,
        notification_repository: INotificationRepository,
        emitter: Optional[BreachEmitter] = None
    ):
        self._job_repo = job_repository
        self._timeline_repo = timeline_repository
        self._notification_repo = notification_repository
        self._emitter = emitter or BreachEmitter()

    async def run(self, now: datetime) -> EscalationOutcome:
        outcome = EscalationOutcome()

        for job in await self._job_repo.list_all():
            outcome.evaluated += 1
            status = evaluate(job.policy, job.milestones, now)
            if status.state == SLAState.BREACHED:
                outcome.breached += 1

            if not _snapshot_changed(job, status):
                continue

            ref = JobRef(job_id=job.id, job_number=job.job_number, completed=job.is_completed)
            outcome.emission.extend(self._emitter.on_tick(job.last_status, status, ref, now))
            job.apply_status(status)
            await self._job_repo.write_status(job)
            outcome.changed += 1

        if outcome.emission.timeline:
            await self._timeline_repo.append(outcome.emission.timeline)
        if outcome.emission.notifications:
            await self._notification_repo.append(outcome.emission.notifications)

        return outcome
