import asyncio

from jobwatch.engine import SLAScheduler


class TestSLAScheduler:
    async def test_runs_first_tick_immediately(self) -> None:
        ran = asyncio.Event()

        async def tick() -> None:
            ran.set()

        scheduler = SLAScheduler(interval_seconds=3600)
        await scheduler.start(tick)
        try:
            await asyncio.wait_for(ran.wait(), timeout=5)
            assert scheduler.is_running
        finally:
            await scheduler.stop()

        assert not scheduler.is_running

    async def test_reschedule_before_start(self) -> None:
        scheduler = SLAScheduler(interval_seconds=60)

        assert scheduler.reschedule(30)
        assert scheduler.interval_seconds == 30
        assert not scheduler.reschedule(30)
        assert not scheduler.reschedule(0)

    async def test_reschedule_while_running(self) -> None:
        async def tick() -> None:
            pass

        scheduler = SLAScheduler(interval_seconds=60)
        await scheduler.start(tick, run_immediately=False)
        try:
            assert scheduler.reschedule(15)
            assert scheduler.interval_seconds == 15
        finally:
            await scheduler.stop()

    async def test_stop_without_start_is_a_no_op(self) -> None:
        await SLAScheduler().stop()

    async def test_stop_waits_for_the_tick_in_flight(self) -> None:
        events = []
        started = asyncio.Event()

        async def slow_tick() -> None:
            events.append("start")
            started.set()
            await asyncio.sleep(0.3)
            events.append("finish")

        scheduler = SLAScheduler(interval_seconds=3600)
        await scheduler.start(slow_tick)
        await asyncio.wait_for(started.wait(), timeout=5)

        await scheduler.stop()

        assert events == ["start", "finish"]
        assert not scheduler.is_running
