"""
SLA Controllers (API Routes)
=============================

FastAPI routes for jobs, milestone writes, policy edits and the engine.

Controllers are thin - they delegate to application services. Every write
runs inside the engine queue so it never interleaves with a tick; reads
use a plain session and see committed state only.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from jobwatch.config import Milestone
from jobwatch.engine import EngineQueue, EscalationTicker, SLAScheduler
from jobwatch.notifications.application import TimelineEntryResponse
from jobwatch.notifications.infrastructure import (
    SQLAlchemyNotificationRepository, SQLAlchemyTimelineRepository
)
from jobwatch.shared.api.dependencies import (
    get_clock, get_config_provider, get_queue, get_scheduler, get_ticker, relay_committed
)
from jobwatch.shared.clock import Clock
from jobwatch.sla.application import (
    DashboardQueryDTO,
    DashboardResponse,
    ISLAConfigProvider,
    JobCreateDTO,
    JobResponse,
    JobService,
    MilestoneCorrectionDTO,
    MilestoneWriteDTO,
    PolicyDTO,
)
from jobwatch.sla.infrastructure import SQLAlchemyJobRepository

router = APIRouter(prefix="/jobs", tags=["Jobs & SLA"])
engine_router = APIRouter(prefix="/engine", tags=["Engine"])


# ========== Dependencies ==========

class JobServiceFactory:
    """Builds a JobService bound to one session."""

    def __init__(
        self,
        config_provider: ISLAConfigProvider = Depends(get_config_provider),
        clock: Clock = Depends(get_clock)
    ):
        self.config_provider = config_provider
        self.clock = clock

    def __call__(self, session: AsyncSession) -> JobService:
        return JobService(
            SQLAlchemyJobRepository(session),
            SQLAlchemyTimelineRepository(session),
            SQLAlchemyNotificationRepository(session),
            self.config_provider,
            clock=self.clock,
        )


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log a new job",
    description="""
    Log a job. The SLA policy defaults to the configured targets for the
    job's priority (or the emergency targets) unless one is supplied.

    **Priority Levels**: `critical`, `high`, `medium`, `low`
    """
)
async def create_job(
    dto: JobCreateDTO,
    request: Request,
    queue: EngineQueue = Depends(get_queue),
    services: JobServiceFactory = Depends()
):
    async with queue.transaction() as session:
        service = services(session)
        job, sla_status = await service.create_job(dto)
    relay_committed(request, service.emitted)
    return JobResponse.from_domain(job, sla_status)


@router.get(
    "",
    response_model=DashboardResponse,
    summary="Get SLA dashboard",
    description="""
    Jobs with their live SLA status and summary counts.

    **SLA States:** `on_track`, `breached`. The `legacy_status` field carries
    the traffic-light label: completed jobs are `green`, breached jobs `red`,
    everything else `amber`.
    """
)
async def get_dashboard(
    priority: Optional[str] = Query(None, pattern="^(critical|high|medium|low)$"),
    sla_state: Optional[str] = Query(None, pattern="^(on_track|breached)$"),
    include_completed: bool = Query(True),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    queue: EngineQueue = Depends(get_queue),
    services: JobServiceFactory = Depends()
):
    query = DashboardQueryDTO(
        priority=priority,
        sla_state=sla_state,
        include_completed=include_completed,
        limit=limit,
        offset=offset,
    )
    async with queue.read() as session:
        rows, summary = await services(session).dashboard(query)
    return DashboardResponse(
        jobs=[JobResponse.from_domain(job, sla_status) for job, sla_status in rows],
        summary=summary,
    )


@router.get("/{job_id}", response_model=JobResponse, summary="Get job SLA status")
async def get_job(
    job_id: str,
    queue: EngineQueue = Depends(get_queue),
    services: JobServiceFactory = Depends()
):
    async with queue.read() as session:
        job, sla_status = await services(session).get_job(job_id)
    return JobResponse.from_domain(job, sla_status)


@router.post(
    "/{job_id}/milestones/{milestone}",
    response_model=JobResponse,
    summary="Record a milestone",
    description="""
    Record `accepted`, `on_site` or `completed`. Milestones must be recorded
    in order and each timestamp must not precede the previous one; the job is
    re-evaluated immediately.
    """
)
async def record_milestone(
    job_id: str,
    milestone: Milestone,
    request: Request,
    dto: Optional[MilestoneWriteDTO] = None,
    queue: EngineQueue = Depends(get_queue),
    services: JobServiceFactory = Depends()
):
    timestamp = dto.timestamp if dto else None
    async with queue.transaction() as session:
        service = services(session)
        job, sla_status = await service.record_milestone(job_id, milestone, timestamp)
    relay_committed(request, service.emitted)
    return JobResponse.from_domain(job, sla_status)


@router.put(
    "/{job_id}/milestones/{milestone}",
    response_model=JobResponse,
    summary="Correct a milestone",
)
async def correct_milestone(
    job_id: str,
    milestone: Milestone,
    dto: MilestoneCorrectionDTO,
    request: Request,
    queue: EngineQueue = Depends(get_queue),
    services: JobServiceFactory = Depends()
):
    async with queue.transaction() as session:
        service = services(session)
        job, sla_status = await service.correct_milestone(job_id, milestone, dto.timestamp)
    relay_committed(request, service.emitted)
    return JobResponse.from_domain(job, sla_status)


@router.put(
    "/{job_id}/policy",
    response_model=JobResponse,
    summary="Edit the SLA policy",
    description="Allowed until the job is completed; returns 409 afterwards."
)
async def update_policy(
    job_id: str,
    dto: PolicyDTO,
    request: Request,
    queue: EngineQueue = Depends(get_queue),
    services: JobServiceFactory = Depends()
):
    async with queue.transaction() as session:
        service = services(session)
        job, sla_status = await service.update_policy(job_id, dto)
    relay_committed(request, service.emitted)
    return JobResponse.from_domain(job, sla_status)


@router.get(
    "/{job_id}/timeline",
    response_model=List[TimelineEntryResponse],
    summary="Get the job's audit timeline"
)
async def get_timeline(
    job_id: str,
    queue: EngineQueue = Depends(get_queue),
    services: JobServiceFactory = Depends()
):
    async with queue.read() as session:
        entries = await services(session).timeline(job_id)
    return [TimelineEntryResponse.from_domain(e) for e in entries]


# ========== Engine ==========

class TickResponse(BaseModel):
    tick_id: str
    at: str
    ok: bool
    jobs_evaluated: int
    jobs_changed: int
    jobs_breached: int
    reminders_updated: int
    notifications: int
    timeline_entries: int
    error: Optional[str] = None


class EngineStatusResponse(BaseModel):
    scheduler_running: bool
    unit_of_work_running: bool = False
    interval_seconds: Optional[int] = None
    last_tick: Optional[TickResponse] = None


def _tick_response(result) -> TickResponse:
    return TickResponse(
        tick_id=result.tick_id,
        at=result.at.isoformat(),
        ok=result.ok,
        jobs_evaluated=result.jobs_evaluated,
        jobs_changed=result.jobs_changed,
        jobs_breached=result.jobs_breached,
        reminders_updated=result.reminders_updated,
        notifications=result.notifications,
        timeline_entries=result.timeline_entries,
        error=result.error,
    )


@engine_router.post("/tick", response_model=TickResponse, summary="Run one engine tick now")
async def run_tick(ticker: EscalationTicker = Depends(get_ticker)):
    return _tick_response(await ticker.run_once())


@engine_router.get("/status", response_model=EngineStatusResponse, summary="Engine status")
async def engine_status(
    ticker: EscalationTicker = Depends(get_ticker),
    scheduler: Optional[SLAScheduler] = Depends(get_scheduler),
    queue: EngineQueue = Depends(get_queue)
):
    return EngineStatusResponse(
        scheduler_running=bool(scheduler and scheduler.is_running),
        interval_seconds=scheduler.interval_seconds if scheduler else None,
        unit_of_work_running=queue.busy,
        last_tick=_tick_response(ticker.last_result) if ticker.last_result else None,
    )
