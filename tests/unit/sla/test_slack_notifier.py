import asyncio
from datetime import datetime
from typing import Optional

import httpx

from jobwatch.config import NotificationType, RelatedType
from jobwatch.notifications.domain import Notification
from jobwatch.sla.infrastructure.external import CircuitBreaker, CircuitState, SlackNotifier

WEBHOOK = "https://hooks.slack.test/services/T000/B000/XXXX"


def _notification(t0: datetime) -> Notification:
    return Notification.create(
        type=NotificationType.SLA_BREACH,
        title="SLA Breach",
        message="Job JOB-1: Job not accepted within 20 minutes of logging",
        timestamp=t0,
        related_id="job-1",
        related_type=RelatedType.JOB,
    )


def _notifier(handler, breaker: Optional[CircuitBreaker] = None) -> SlackNotifier:
    return SlackNotifier(
        webhook_url=WEBHOOK,
        channel="#ooh-escalations",
        circuit_breaker=breaker,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        backoff_base=0,
    )


class TestSlackNotifier:
    async def test_sends_block_message(self, t0: datetime) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="ok")

        notifier = _notifier(handler)

        assert await notifier.send(_notification(t0))
        assert len(seen) == 1
        assert b"#ooh-escalations" in seen[0].content
        await notifier.close()

    async def test_retries_then_gives_up(self, t0: datetime) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(500)

        notifier = _notifier(handler)

        assert not await notifier.send(_notification(t0), max_retries=3)
        assert calls == 3
        await notifier.close()

    async def test_transport_errors_are_not_raised(self, t0: datetime) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        notifier = _notifier(handler)

        assert await notifier.relay([_notification(t0)]) == 0
        await notifier.close()

    async def test_open_circuit_skips_delivery(self, t0: datetime) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200)

        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        breaker.record_failure()
        notifier = _notifier(handler, breaker)

        assert not await notifier.send(_notification(t0))
        assert calls == 0
        await notifier.close()

    async def test_disabled_without_webhook(self, t0: datetime) -> None:
        notifier = SlackNotifier(webhook_url=None, channel="#x")

        assert not notifier.enabled
        assert await notifier.relay([_notification(t0)]) == 0
        assert notifier.dispatch([_notification(t0)]) is None

    async def test_dispatch_returns_before_delivery(self, t0: datetime) -> None:
        release = asyncio.Event()
        seen = []

        async def handler(request: httpx.Request) -> httpx.Response:
            await release.wait()
            seen.append(request)
            return httpx.Response(200, text="ok")

        notifier = _notifier(handler)

        task = notifier.dispatch([_notification(t0)])

        assert task is not None
        assert not task.done()
        assert seen == []
        release.set()
        assert await task == 1
        assert len(seen) == 1
        await notifier.close()

    async def test_close_cancels_a_stuck_relay(self, t0: datetime) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(60)
            return httpx.Response(200)

        notifier = SlackNotifier(
            webhook_url=WEBHOOK,
            channel="#ooh-escalations",
            timeout_seconds=0.05,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            backoff_base=0,
        )
        task = notifier.dispatch([_notification(t0)])

        await notifier.close()

        assert task.cancelled()


class TestCircuitBreaker:
    def test_half_opens_after_timeout(self) -> None:
        now = [0.0]
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=30, monotonic=lambda: now[0])

        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED
        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN

        now[0] = 31.0
        assert breaker.state == CircuitState.HALF_OPEN
        breaker.record_success()
        assert breaker.state == CircuitState.CLOSED
