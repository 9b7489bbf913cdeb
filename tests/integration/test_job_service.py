from datetime import timedelta
from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from jobwatch.config import LifecycleStage, Milestone, SLAState, TimelineEntryType
from jobwatch.core import (
    MilestoneOrderException,
    PolicyLockedException,
    ResourceNotFoundException,
    ValidationException,
)
from jobwatch.engine import EscalationTicker
from jobwatch.notifications.infrastructure import (
    SQLAlchemyNotificationRepository, SQLAlchemyTimelineRepository
)
from jobwatch.sla.application import DashboardQueryDTO, JobCreateDTO, JobService, PolicyDTO
from jobwatch.sla.domain import SLAConfig
from jobwatch.sla.infrastructure import SQLAlchemyJobRepository, StaticConfigProvider


def _service(session: AsyncSession, clock, config: Optional[SLAConfig] = None) -> JobService:
    return JobService(
        SQLAlchemyJobRepository(session),
        SQLAlchemyTimelineRepository(session),
        SQLAlchemyNotificationRepository(session),
        StaticConfigProvider(config),
        clock=clock,
    )


class TestCreateJob:
    async def test_policy_defaults_from_priority(self, db_session: AsyncSession, clock) -> None:
        job, status = await _service(db_session, clock).create_job(
            JobCreateDTO(customer="Acme", site="Depot 4", priority="high")
        )

        assert job.job_number.startswith("JOB-260302-")
        assert job.milestones.logged == clock()
        assert job.policy.on_site_within == 60
        assert status.state == SLAState.ON_TRACK

    async def test_emergency_targets(self, db_session: AsyncSession, clock) -> None:
        job, _ = await _service(db_session, clock).create_job(
            JobCreateDTO(customer="Acme", site="Depot 4", priority="low", is_emergency=True)
        )

        assert job.policy.accept_within == 5

    async def test_explicit_policy_wins(self, db_session: AsyncSession, clock) -> None:
        job, _ = await _service(db_session, clock).create_job(JobCreateDTO(
            customer="Acme",
            site="Depot 4",
            policy=PolicyDTO(accept_within=1, on_site_within=2, complete_within=3),
        ))

        assert (job.policy.accept_within, job.policy.complete_within) == (1, 3)

    async def test_duplicate_job_number_rejected(self, db_session: AsyncSession, clock) -> None:
        service = _service(db_session, clock)
        await service.create_job(JobCreateDTO(job_number="JOB-7", customer="Acme", site="A"))

        with pytest.raises(ValidationException):
            await service.create_job(JobCreateDTO(job_number="JOB-7", customer="Acme", site="B"))

    async def test_backdated_job_is_breached_on_creation(self, db_session: AsyncSession, clock) -> None:
        service = _service(db_session, clock)

        job, status = await service.create_job(JobCreateDTO(
            customer="Acme", site="A", logged_at=clock() - timedelta(hours=1)
        ))

        assert status.state == SLAState.BREACHED
        assert job.was_breached
        assert len(service.emitted) == 1


class TestMilestoneWrites:
    async def test_skip_is_rejected(self, db_session: AsyncSession, clock) -> None:
        service = _service(db_session, clock)
        job, _ = await service.create_job(JobCreateDTO(customer="Acme", site="A"))

        with pytest.raises(MilestoneOrderException):
            await service.record_milestone(job.id, Milestone.ON_SITE)

    async def test_unknown_job(self, db_session: AsyncSession, clock) -> None:
        with pytest.raises(ResourceNotFoundException):
            await _service(db_session, clock).record_milestone("job-missing", Milestone.ACCEPTED)

    async def test_late_acceptance_keeps_audit_flag(self, queue, clock) -> None:
        async with queue.transaction() as session:
            job, _ = await _service(session, clock).create_job(JobCreateDTO(customer="Acme", site="A"))

        clock.advance(minutes=25)
        await EscalationTicker(queue, clock=clock).run_once()

        async with queue.transaction() as session:
            service = _service(session, clock)
            job, status = await service.record_milestone(job.id, Milestone.ACCEPTED)
            entries = await service.timeline(job.id)

        assert status.state == SLAState.ON_TRACK
        assert job.last_state == SLAState.ON_TRACK
        assert job.was_breached
        assert job.first_breached_stage == LifecycleStage.ACCEPTANCE
        assert [e.type for e in entries][-2:] == [
            TimelineEntryType.MILESTONE_RECORDED, TimelineEntryType.SLA_CLEARED
        ]

    async def test_late_write_without_tick_sets_audit_flag(self, db_session: AsyncSession, clock) -> None:
        service = _service(db_session, clock)
        job, _ = await service.create_job(JobCreateDTO(customer="Acme", site="A"))

        clock.advance(minutes=30)
        job, status = await service.record_milestone(job.id, Milestone.ACCEPTED)

        assert status.state == SLAState.ON_TRACK
        assert job.was_breached
        assert service.emitted == []

    async def test_on_time_write_leaves_flag_clear(self, db_session: AsyncSession, clock) -> None:
        service = _service(db_session, clock)
        job, _ = await service.create_job(JobCreateDTO(customer="Acme", site="A"))

        clock.advance(minutes=30)
        job, _ = await service.record_milestone(job.id, Milestone.ACCEPTED, clock() - timedelta(minutes=20))

        assert not job.was_breached

    async def test_correction_is_on_the_timeline(self, db_session: AsyncSession, clock) -> None:
        service = _service(db_session, clock)
        job, _ = await service.create_job(JobCreateDTO(customer="Acme", site="A"))
        clock.advance(minutes=5)
        await service.record_milestone(job.id, Milestone.ACCEPTED)

        job, _ = await service.correct_milestone(job.id, Milestone.ACCEPTED, clock() - timedelta(minutes=2))

        entries = await service.timeline(job.id)
        assert entries[-1].type == TimelineEntryType.MILESTONE_CORRECTED
        assert job.milestones.accepted == clock() - timedelta(minutes=2)


class TestPolicyUpdate:
    async def test_locked_after_completion(self, db_session: AsyncSession, clock) -> None:
        service = _service(db_session, clock)
        job, _ = await service.create_job(JobCreateDTO(customer="Acme", site="A"))
        for milestone in (Milestone.ACCEPTED, Milestone.ON_SITE, Milestone.COMPLETED):
            await service.record_milestone(job.id, milestone)

        with pytest.raises(PolicyLockedException):
            await service.update_policy(job.id, PolicyDTO(accept_within=1, on_site_within=1, complete_within=1))

    async def test_tighter_policy_breaches_immediately(self, db_session: AsyncSession, clock) -> None:
        service = _service(db_session, clock)
        job, _ = await service.create_job(JobCreateDTO(customer="Acme", site="A"))
        clock.advance(minutes=10)

        job, status = await service.update_policy(
            job.id, PolicyDTO(accept_within=5, on_site_within=60, complete_within=120)
        )

        assert status.state == SLAState.BREACHED
        entries = await service.timeline(job.id)
        assert TimelineEntryType.POLICY_UPDATED in [e.type for e in entries]
        assert len(service.emitted) == 1


class TestDashboard:
    async def test_counts_and_filters(self, db_session: AsyncSession, clock) -> None:
        service = _service(db_session, clock)
        on_time, _ = await service.create_job(JobCreateDTO(customer="A", site="1"))
        late, _ = await service.create_job(JobCreateDTO(
            customer="B", site="2", logged_at=clock() - timedelta(hours=1)
        ))
        done, _ = await service.create_job(JobCreateDTO(customer="C", site="3"))
        for milestone in (Milestone.ACCEPTED, Milestone.ON_SITE, Milestone.COMPLETED):
            await service.record_milestone(done.id, milestone)

        rows, summary = await service.dashboard(DashboardQueryDTO())

        assert summary.total == 3
        assert (summary.green, summary.amber, summary.red) == (1, 1, 1)
        assert summary.breached == 1
        assert summary.completed == 1
        assert summary.breach_rate == round(1 / 3, 4)

        rows, summary = await service.dashboard(DashboardQueryDTO(sla_state="breached"))
        assert [job.id for job, _ in rows] == [late.id]

        rows, summary = await service.dashboard(DashboardQueryDTO(include_completed=False, limit=1))
        assert summary.total == 2
        assert len(rows) == 1
