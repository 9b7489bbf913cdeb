import asyncio
from datetime import timedelta

import httpx

from jobwatch.config import Milestone, ReminderStatus, SLAState
from jobwatch.engine import EngineQueue, EscalationTicker
from jobwatch.notifications.infrastructure import (
    SQLAlchemyNotificationRepository, SQLAlchemyTimelineRepository
)
from jobwatch.reminders.application import ReminderCreateDTO, ReminderService
from jobwatch.reminders.infrastructure import SQLAlchemyReminderRepository
from jobwatch.sla.application import JobCreateDTO, JobService
from jobwatch.sla.infrastructure import SQLAlchemyJobRepository, SlackNotifier, StaticConfigProvider


async def _create_job(queue: EngineQueue, clock, **fields):
    async with queue.transaction() as session:
        service = JobService(
            SQLAlchemyJobRepository(session),
            SQLAlchemyTimelineRepository(session),
            SQLAlchemyNotificationRepository(session),
            StaticConfigProvider(),
            clock=clock,
        )
        job, _ = await service.create_job(JobCreateDTO(customer="Acme", site="Depot 4", **fields))
    return job


async def _notifications(queue: EngineQueue):
    async with queue.read() as session:
        return await SQLAlchemyNotificationRepository(session).list()


async def _stored_job(queue: EngineQueue, job_id: str):
    async with queue.read() as session:
        return await SQLAlchemyJobRepository(session).get(job_id)


class TestEscalationTicker:
    async def test_quiet_tick_changes_nothing(self, queue: EngineQueue, clock) -> None:
        await _create_job(queue, clock)
        clock.advance(minutes=5)

        result = await EscalationTicker(queue, clock=clock).run_once()

        assert result.ok
        assert result.jobs_evaluated == 1
        assert result.jobs_changed == 0
        assert await _notifications(queue) == []

    async def test_breach_is_notified_exactly_once(self, queue: EngineQueue, clock) -> None:
        job = await _create_job(queue, clock)
        ticker = EscalationTicker(queue, clock=clock)

        clock.advance(minutes=21)
        first = await ticker.run_once()
        for _ in range(3):
            clock.advance(minutes=1)
            await ticker.run_once()

        assert first.jobs_changed == 1
        assert first.notifications == 1
        notifications = await _notifications(queue)
        assert len(notifications) == 1
        assert notifications[0].related_id == job.id

        stored = await _stored_job(queue, job.id)
        assert stored.last_state == SLAState.BREACHED
        assert stored.was_breached

    async def test_breach_lands_on_timeline(self, queue: EngineQueue, clock) -> None:
        job = await _create_job(queue, clock)
        clock.advance(minutes=25)

        await EscalationTicker(queue, clock=clock).run_once()

        async with queue.read() as session:
            entries = await SQLAlchemyTimelineRepository(session).list_for_job(job.id)
        assert [e.type.value for e in entries] == ["job_created", "sla_breached"]

    async def test_failed_tick_rolls_back(self, queue: EngineQueue, clock, monkeypatch) -> None:
        job = await _create_job(queue, clock)
        clock.advance(minutes=30)

        async def broken_sweep(self, now=None):
            raise RuntimeError("reminder store unavailable")

        monkeypatch.setattr(ReminderService, "sweep", broken_sweep)
        ticker = EscalationTicker(queue, clock=clock)

        result = await ticker.run_once()

        assert not result.ok
        assert "reminder store unavailable" in result.error
        assert ticker.last_result is result
        assert await _notifications(queue) == []
        assert (await _stored_job(queue, job.id)).last_state == SLAState.ON_TRACK

        monkeypatch.undo()
        retried = await ticker.run_once()

        assert retried.ok
        assert len(await _notifications(queue)) == 1

    async def test_reminders_are_swept_in_the_same_tick(self, queue: EngineQueue, clock) -> None:
        async with queue.transaction() as session:
            reminder = await ReminderService(
                SQLAlchemyReminderRepository(session),
                SQLAlchemyNotificationRepository(session),
                clock=clock,
            ).add_reminder(ReminderCreateDTO(message="Chase parts", due_at=clock() + timedelta(minutes=5)))

        clock.advance(minutes=6)
        ticker = EscalationTicker(queue, clock=clock)
        result = await ticker.run_once()
        await ticker.run_once()

        assert result.reminders_updated == 1
        async with queue.read() as session:
            stored = await SQLAlchemyReminderRepository(session).get(reminder.id)
        assert stored.status == ReminderStatus.OVERDUE
        notifications = await _notifications(queue)
        assert [n.related_id for n in notifications] == [reminder.id]

    async def test_completed_job_stops_escalating(self, queue: EngineQueue, clock) -> None:
        job = await _create_job(queue, clock)
        async with queue.transaction() as session:
            service = JobService(
                SQLAlchemyJobRepository(session),
                SQLAlchemyTimelineRepository(session),
                SQLAlchemyNotificationRepository(session),
                StaticConfigProvider(),
                clock=clock,
            )
            for milestone in (Milestone.ACCEPTED, Milestone.ON_SITE, Milestone.COMPLETED):
                clock.advance(minutes=1)
                await service.record_milestone(job.id, milestone)

        clock.advance(days=2)
        result = await EscalationTicker(queue, clock=clock).run_once()

        assert result.jobs_breached == 0
        assert await _notifications(queue) == []

    async def test_slow_slack_does_not_hold_the_tick(self, queue: EngineQueue, clock) -> None:
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return httpx.Response(200, text="ok")

        notifier = SlackNotifier(
            webhook_url="https://hooks.slack.test/services/T000/B000/XXXX",
            channel="#ooh-escalations",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            backoff_base=0,
        )
        await _create_job(queue, clock)
        clock.advance(minutes=21)

        result = await asyncio.wait_for(
            EscalationTicker(queue, clock=clock, notifier=notifier).run_once(), timeout=5
        )

        assert result.ok
        assert result.notifications == 1
        assert not queue.busy
        release.set()
        await notifier.close()
