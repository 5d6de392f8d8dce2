"""Per-symbol tracking scheduler.

Each tracked symbol owns one Job: an asyncio task that runs a fetch-and-store
cycle every interval until its stop event is set. The symbol -> Job registry is
mutated only under a per-symbol lock, so two concurrent start() calls for the
same symbol cannot both create a job.
"""
import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple

from stock_tracker.db import PricePoint, PriceStore
from stock_tracker.errors import NotFound
from stock_tracker.providers import QuoteProviderABC
from stock_tracker.schemas import JobState, JobStatus
from stock_tracker.services.symbols import SymbolService, validate_symbol_format
from stock_tracker.utils import utcnow

logger = logging.getLogger(__name__)

SHUTDOWN_GRACE_SECONDS = 5.0


@dataclass
class Job:
    """Runtime handle for one symbol's recurring fetch cycle. Never persisted."""

    symbol: str
    interval_ms: int
    job_id: str
    started_at: datetime = field(default_factory=utcnow)
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)
    task: asyncio.Task | None = None

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000


class StartResult(NamedTuple):
    job_id: str
    created: bool


class TrackingScheduler:
    """Owns the job registry and drives the quote provider on a fixed period."""

    def __init__(
        self,
        symbols: SymbolService,
        provider: QuoteProviderABC,
        prices: PriceStore,
    ) -> None:
        self._symbols = symbols
        self._provider = provider
        self._prices = prices
        self._jobs: dict[str, Job] = {}
        # per-symbol lock plus how many callers hold or wait on it
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}
        # loops of stopped jobs that may still be finishing a cycle
        self._stopping: set[asyncio.Task] = set()
        self._in_flight: set[str] = set()

    @asynccontextmanager
    async def _symbol_lock(self, symbol: str) -> AsyncIterator[None]:
        """Hold the lock for symbol; the entry is dropped once nobody holds or awaits it."""
        lock, users = self._locks.get(symbol, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[symbol] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[symbol]
            if users == 1:
                del self._locks[symbol]
            else:
                self._locks[symbol] = (lock, users - 1)

    async def start(self, symbol: str) -> StartResult:
        """Start tracking symbol; a no-op returning the live job if one exists.

        The first fetch-and-store cycle runs before this returns, so a read
        right after start finds data (unless that fetch failed).

        Raises:
            ValidationError: bad symbol format.
            Conflict: symbol is active in the registry but has no live job.
            NotFound: the price feed does not know symbol.
            ExternalServiceError: the feed failed while validating symbol.
        """
        validate_symbol_format(symbol)
        async with self._symbol_lock(symbol):
            existing = self._jobs.get(symbol)
            if existing is not None:
                logger.info("Already tracking %s", symbol)
                return StartResult(existing.job_id, created=False)

            record = await self._symbols.create(symbol)
            job = Job(
                symbol=symbol,
                interval_ms=record.check_interval_ms,
                job_id=f"{symbol}-{int(time.time() * 1000)}",
            )
            job.task = asyncio.create_task(self._run(job), name=f"track-{symbol}")
            self._jobs[symbol] = job
            logger.info("Started tracking %s every %dms", symbol, job.interval_ms)

            await self.fetch_and_store(symbol)
        return StartResult(job.job_id, created=True)

    async def stop(self, symbol: str) -> None:
        """Cancel future ticks for symbol. History and registry state are kept.

        A cycle already in flight is not interrupted and may still write;
        shutdown() waits for it.

        Raises:
            NotFound: no job is registered for symbol.
        """
        async with self._symbol_lock(symbol):
            job = self._jobs.pop(symbol, None)
            if job is None:
                raise NotFound(f"No tracking job found for {symbol}")
            job.stop_event.set()
            if job.task is not None and not job.task.done():
                self._stopping.add(job.task)
                job.task.add_done_callback(self._stopping.discard)
        logger.info("Stopped tracking %s", symbol)

    async def fetch_and_store(self, symbol: str) -> bool:
        """Run one cycle: fetch a quote, append it, stamp last_checked_at.

        Returns False when the cycle was skipped (one already running for
        symbol) or failed. Failures are logged, never raised.
        """
        if symbol in self._in_flight:
            logger.debug("Cycle for %s still running; skipping", symbol)
            return False
        self._in_flight.add(symbol)
        try:
            quote = await self._provider.get_quote(symbol)
            await self._prices.append(
                PricePoint(
                    symbol=symbol,
                    price=Decimal(str(quote.price)),
                    volume=quote.volume,
                    timestamp=quote.timestamp,
                )
            )
            await self._symbols.update_last_checked(symbol)
            return True
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to fetch price for %s", symbol)
            return False
        finally:
            self._in_flight.discard(symbol)

    async def _run(self, job: Job) -> None:
        loop = asyncio.get_running_loop()
        interval = job.interval_seconds
        next_tick = loop.time() + interval
        while not job.stop_event.is_set():
            try:
                await asyncio.wait_for(
                    job.stop_event.wait(), timeout=max(0.0, next_tick - loop.time())
                )
                break
            except asyncio.TimeoutError:
                pass
            await self.fetch_and_store(job.symbol)
            next_tick += interval
            now = loop.time()
            if next_tick <= now:
                missed = int((now - next_tick) // interval) + 1
                logger.debug("Cycle for %s overran; skipping %d tick(s)", job.symbol, missed)
                next_tick += missed * interval
        logger.debug("Job loop for %s exited", job.symbol)

    def list_active_jobs(self) -> list[str]:
        return list(self._jobs)

    def job_count(self) -> int:
        return len(self._jobs)

    def job_status(self, symbol: str) -> JobStatus | None:
        if symbol not in self._jobs:
            return None
        return JobStatus(symbol=symbol, status=JobState.ACTIVE)

    def all_jobs(self) -> list[JobStatus]:
        return [JobStatus(symbol=s, status=JobState.ACTIVE) for s in self._jobs]

    def get_job(self, symbol: str) -> Job | None:
        return self._jobs.get(symbol)

    async def shutdown(self) -> None:
        """Stop every job and wait for their loops to exit.

        Loops of jobs stopped earlier are awaited too, so no cycle is still
        writing once this returns.
        """
        jobs = list(self._jobs.values())
        self._jobs.clear()
        for job in jobs:
            job.stop_event.set()
        tasks = [job.task for job in jobs if job.task is not None]
        tasks.extend(self._stopping)
        self._stopping.clear()
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=SHUTDOWN_GRACE_SECONDS)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Scheduler stopped %d job(s)", len(jobs))
