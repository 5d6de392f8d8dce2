import asyncio

import pytest
from conftest import StubProvider

from stock_tracker.db import TrackedSymbol
from stock_tracker.errors import (Conflict, ExternalServiceError, NotFound,
                                  UpstreamErrorKind, ValidationError)
from stock_tracker.schemas import JobState
from stock_tracker.services import SymbolService, TrackingScheduler


def run(coro):
    return asyncio.run(coro)


class GatedProvider(StubProvider):
    """Holds get_quote() until gate is set, whenever a gate is installed."""

    def __init__(self, prices=None) -> None:
        super().__init__(prices)
        self.gate = None

    async def get_quote(self, symbol):
        if self.gate is not None:
            await self.gate.wait()
        return await super().get_quote(symbol)


def fast_scheduler(registry, cache, provider, prices, interval_ms=20):
    symbols = SymbolService(registry, cache, provider, default_interval_ms=interval_ms)
    return TrackingScheduler(symbols, provider, prices)


def test_start_fetches_once_before_returning(scheduler, prices):
    async def scenario():
        result = await scheduler.start("AAPL")
        stored = await prices.count("AAPL")
        await scheduler.shutdown()
        return result, stored

    result, stored = run(scenario())

    assert result.created is True
    assert result.job_id.startswith("AAPL-")
    assert stored == 1


def test_start_is_idempotent_for_live_job(scheduler, provider):
    async def scenario():
        first = await scheduler.start("AAPL")
        second = await scheduler.start("AAPL")
        count = scheduler.job_count()
        await scheduler.shutdown()
        return first, second, count

    first, second, count = run(scenario())

    assert second.created is False
    assert second.job_id == first.job_id
    assert count == 1
    # one upstream validation plus the immediate fetch
    assert provider.calls == ["AAPL", "AAPL"]


def test_concurrent_starts_create_one_job(scheduler):
    async def scenario():
        results = await asyncio.gather(scheduler.start("AAPL"), scheduler.start("AAPL"))
        count = scheduler.job_count()
        await scheduler.shutdown()
        return results, count

    results, count = run(scenario())

    assert sorted(r.created for r in results) == [False, True]
    assert results[0].job_id == results[1].job_id
    assert count == 1


def test_start_rejects_bad_format(scheduler, provider):
    with pytest.raises(ValidationError):
        run(scheduler.start("aapl"))
    with pytest.raises(ValidationError):
        run(scheduler.start("AAPL\n"))
    assert provider.calls == []


def test_start_unknown_symbol_registers_nothing(scheduler):
    with pytest.raises(NotFound):
        run(scheduler.start("ZZZZ"))
    assert scheduler.list_active_jobs() == []


def test_stop_without_job_is_not_found(scheduler):
    with pytest.raises(NotFound):
        run(scheduler.stop("AAPL"))


def test_stop_removes_job_and_keeps_history(scheduler, prices):
    async def scenario():
        await scheduler.start("AAPL")
        job = scheduler.get_job("AAPL")
        await scheduler.stop("AAPL")
        await asyncio.wait_for(job.task, timeout=1)
        return job

    job = run(scenario())

    assert job.stop_event.is_set()
    assert scheduler.get_job("AAPL") is None
    assert scheduler.job_status("AAPL") is None
    assert run(prices.count("AAPL")) == 1


def test_restart_after_stop_conflicts_while_symbol_active(scheduler):
    async def scenario():
        await scheduler.start("AAPL")
        await scheduler.stop("AAPL")
        await scheduler.start("AAPL")

    with pytest.raises(Conflict):
        run(scenario())


def test_job_keeps_running_after_failed_cycle(registry, cache, prices):
    provider = StubProvider({"AAPL": 150.0})
    scheduler = fast_scheduler(registry, cache, provider, prices)

    async def scenario():
        await scheduler.start("AAPL")
        provider.prices["AAPL"] = ExternalServiceError("down", UpstreamErrorKind.UNAVAILABLE)
        await asyncio.sleep(0.1)
        provider.prices["AAPL"] = 151.0
        await asyncio.sleep(0.1)
        alive = not scheduler.get_job("AAPL").task.done()
        await scheduler.shutdown()
        return alive

    assert run(scenario()) is True
    assert run(prices.count("AAPL")) >= 2
    assert float(run(prices.latest("AAPL")).price) == 151.0


def test_failed_cycle_stores_nothing(scheduler, provider, prices):
    provider.prices["AAPL"] = ExternalServiceError("down")

    assert run(scheduler.fetch_and_store("AAPL")) is False
    assert run(prices.count("AAPL")) == 0


def test_overlapping_cycle_is_skipped(registry, cache, prices):
    provider = GatedProvider({"AAPL": 150.0})
    scheduler = fast_scheduler(registry, cache, provider, prices)

    async def scenario():
        await registry.create(TrackedSymbol(symbol="AAPL"))
        provider.gate = asyncio.Event()
        first = asyncio.create_task(scheduler.fetch_and_store("AAPL"))
        await asyncio.sleep(0)
        second = await scheduler.fetch_and_store("AAPL")
        provider.gate.set()
        return await first, second

    assert run(scenario()) == (True, False)
    assert run(prices.count("AAPL")) == 1


def test_job_listing(scheduler):
    async def scenario():
        await scheduler.start("AAPL")
        await scheduler.start("MSFT")
        listing = (scheduler.list_active_jobs(), scheduler.all_jobs(), scheduler.job_status("AAPL"))
        await scheduler.shutdown()
        return listing

    active, jobs, status = run(scenario())

    assert sorted(active) == ["AAPL", "MSFT"]
    assert {j.status for j in jobs} == {JobState.ACTIVE}
    assert status.status is JobState.ACTIVE
    assert scheduler.job_count() == 0


def test_symbol_locks_are_released(scheduler):
    async def scenario():
        with pytest.raises(NotFound):
            await scheduler.stop("NVDA")
        await asyncio.gather(scheduler.start("AAPL"), scheduler.start("AAPL"))
        await scheduler.stop("AAPL")
        await scheduler.shutdown()

    run(scenario())

    assert scheduler._locks == {}


def test_shutdown_waits_for_cycle_of_stopped_job(registry, cache, prices):
    provider = GatedProvider({"AAPL": 150.0})
    scheduler = fast_scheduler(registry, cache, provider, prices)

    async def scenario():
        await scheduler.start("AAPL")
        job = scheduler.get_job("AAPL")
        provider.gate = asyncio.Event()
        # let the loop tick and block inside a cycle
        await asyncio.sleep(0.1)
        await scheduler.stop("AAPL")
        running_after_stop = not job.task.done()
        asyncio.get_running_loop().call_later(0.05, provider.gate.set)
        await scheduler.shutdown()
        return running_after_stop, job.task.done()

    assert run(scenario()) == (True, True)
    assert run(prices.count("AAPL")) == 2
