"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
jobs from the local store and map them to domain entities.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from jobwatch.config import CompletionAnchor, LifecycleStage, Priority, SLAState
from jobwatch.core import RepositoryException
from jobwatch.sla.application.services import IJobRepository, ISLAConfigProvider
from jobwatch.sla.domain import Job, JobMilestones, SLAConfig, SlaPolicy
from jobwatch.sla.infrastructure.models import JobModel


def _stage(value: Optional[str]) -> Optional[LifecycleStage]:
    return LifecycleStage(value) if value else None


def job_to_domain(model: JobModel) -> Job:
    """Map a row to a Job. Missing milestones read as "not reached yet"."""
    return Job(
        id=model.id,
        job_number=model.job_number,
        customer=model.customer,
        site=model.site,
        engineer=model.engineer,
        priority=Priority(model.priority),
        description=model.description or "",
        is_emergency=bool(model.is_emergency),
        milestones=JobMilestones(
            logged=model.logged_at,
            accepted=model.accepted_at,
            on_site=model.on_site_at,
            completed=model.completed_at,
        ),
        policy=SlaPolicy(
            accept_within=model.accept_within,
            on_site_within=model.on_site_within,
            complete_within=model.complete_within,
            completion_anchor=CompletionAnchor(model.completion_anchor),
        ),
        last_state=SLAState(model.last_state),
        last_stage=_stage(model.last_stage),
        last_reason=model.last_reason,
        was_breached=bool(model.was_breached),
        first_breached_stage=_stage(model.first_breached_stage),
    )


def _apply_status(model: JobModel, job: Job) -> None:
    model.last_state = job.last_state.value
    model.last_stage = job.last_stage.value if job.last_stage else None
    model.last_reason = job.last_reason
    model.was_breached = job.was_breached
    model.first_breached_stage = job.first_breached_stage.value if job.first_breached_stage else None


def _apply_job(model: JobModel, job: Job) -> None:
    model.job_number = job.job_number
    model.customer = job.customer
    model.site = job.site
    model.engineer = job.engineer
    model.priority = job.priority.value
    model.description = job.description
    model.is_emergency = job.is_emergency

    model.logged_at = job.milestones.logged
    model.accepted_at = job.milestones.accepted
    model.on_site_at = job.milestones.on_site
    model.completed_at = job.milestones.completed

    model.accept_within = job.policy.accept_within
    model.on_site_within = job.policy.on_site_within
    model.complete_within = job.policy.complete_within
    model.completion_anchor = job.policy.completion_anchor.value

    _apply_status(model, job)


class SQLAlchemyJobRepository(IJobRepository):
    """
    SQLAlchemy implementation of job repository.

    Handles persistence of Job entities using async SQLAlchemy.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, job_id: str) -> Optional[Job]:
        model = await self._session.get(JobModel, job_id)
        return job_to_domain(model) if model else None

    async def get_by_number(self, job_number: str) -> Optional[Job]:
        stmt = select(JobModel).where(JobModel.job_number == job_number)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return job_to_domain(model) if model else None

    async def list_all(self) -> List[Job]:
        stmt = select(JobModel).order_by(JobModel.logged_at.asc())
        result = await self._session.execute(stmt)
        return [job_to_domain(m) for m in result.scalars().all()]

    async def add(self, job: Job) -> Job:
        model = JobModel(id=job.id)
        _apply_job(model, job)
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise RepositoryException(
                f"Failed to store job {job.job_number}",
                details={"job_id": job.id, "error": str(e.orig)}
            ) from e
        return job

    async def save(self, job: Job) -> Job:
        model = await self._require(job.id)
        _apply_job(model, job)
        model.updated_at = datetime.now(timezone.utc)
        await self._session.flush()
        return job

    async def write_status(self, job: Job) -> None:
        model = await self._require(job.id)
        _apply_status(model, job)
        await self._session.flush()

    async def _require(self, job_id: str) -> JobModel:
        model = await self._session.get(JobModel, job_id)
        if model is None:
            raise RepositoryException(f"Job {job_id} is not stored", details={"job_id": job_id})
        return model


class StaticConfigProvider(ISLAConfigProvider):
    """Config provider with a fixed SLAConfig."""

    def __init__(self, config: Optional[SLAConfig] = None):
        self._config = config or SLAConfig()

    def get_config(self) -> SLAConfig:
        return self._config
