"""Stock query service: cached summaries, detailed views and tracking control."""
import logging
import resource
import sys
import time

from stock_tracker.cache import CacheAside, CacheStore
from stock_tracker.db import PricePoint, PriceStore, TrackedSymbol
from stock_tracker.errors import NotFound
from stock_tracker.schemas import (DetailedStock, JobState, PriceHistoryItem,
                                   StartTrackingResponse, StockSummary,
                                   StopTrackingResponse, SystemStats,
                                   TrackedSymbolInfo, TrackingStatus)
from stock_tracker.services.scheduler import TrackingScheduler
from stock_tracker.services.symbols import SymbolService, validate_symbol_format

logger = logging.getLogger(__name__)

PRICE_CACHE_PREFIX = "stock:price:"
DEFAULT_SUMMARY_TTL_SECONDS = 30
HISTORY_SIZE = 10
MOVING_AVERAGE_WINDOW = 10


def placeholder_analytics(latest: PricePoint) -> dict[str, float | int]:
    """24h analytics fields, not yet computed from a 24h window.

    Change fields are 0, high/low echo the latest price, and volume is the
    latest sample's volume (0 when the feed did not report one).
    """
    price = float(latest.price)
    return {
        "price_change": 0.0,
        "percent_change": 0.0,
        "high24h": price,
        "low24h": price,
        "volume24h": int(latest.volume or 0),
    }


def _memory_usage() -> dict[str, int]:
    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is KiB on Linux, bytes on macOS
    max_rss = usage.ru_maxrss if sys.platform == "darwin" else usage.ru_maxrss * 1024
    return {"maxRss": max_rss, "userTimeMs": int(usage.ru_utime * 1000)}


class StockService:
    """Read path over the price store plus tracking start/stop.

    get_summary() is cache-aside with a short TTL to absorb read bursts;
    stop_and_clear() evicts that entry so a stopped symbol is not served stale.
    """

    def __init__(
        self,
        prices: PriceStore,
        symbols: SymbolService,
        scheduler: TrackingScheduler,
        cache: CacheStore,
        *,
        summary_ttl_seconds: int = DEFAULT_SUMMARY_TTL_SECONDS,
    ) -> None:
        self._prices = prices
        self._symbols = symbols
        self._scheduler = scheduler
        self._summaries = CacheAside[StockSummary](
            cache,
            PRICE_CACHE_PREFIX,
            summary_ttl_seconds,
            encode=lambda summary: summary.model_dump(mode="json"),
            decode=StockSummary.model_validate,
        )
        self._started_at = time.monotonic()

    async def start_tracking(self, symbol: str) -> StartTrackingResponse:
        validate_symbol_format(symbol)
        result = await self._scheduler.start(symbol)
        message = (
            f"Started tracking {symbol}" if result.created else f"Already tracking {symbol}"
        )
        return StartTrackingResponse(job_id=result.job_id, message=message)

    async def stop_and_clear(self, symbol: str) -> StopTrackingResponse:
        validate_symbol_format(symbol)
        await self._scheduler.stop(symbol)
        await self._summaries.invalidate(symbol)
        return StopTrackingResponse(message=f"Stopped tracking {symbol}")

    async def get_summary(self, symbol: str) -> StockSummary:
        """Latest price, moving average of the last 10 and the last 10 points.

        Raises:
            ValidationError: bad symbol format.
            NotFound: symbol is not tracked, or tracked without data yet.
        """
        validate_symbol_format(symbol)
        return await self._summaries.get_or_load(symbol, lambda: self._build_summary(symbol))

    async def get_detailed(self, symbol: str) -> DetailedStock:
        """Summary plus tracking state and placeholder 24h analytics. Not cached."""
        validate_symbol_format(symbol)
        record = await self._symbols.get(symbol)
        latest = await self._latest_or_404(symbol)
        summary = await self._assemble(symbol, latest)
        job = self._scheduler.job_status(symbol)
        return DetailedStock(
            **summary.model_dump(),
            **placeholder_analytics(latest),
            tracking=TrackingStatus(
                is_active=record.is_active,
                check_interval=record.check_interval_ms,
                last_checked=record.last_checked_at,
                job_status=job.status if job else JobState.UNKNOWN,
                error_count=0,
                last_error=None,
            ),
        )

    async def list_tracked(self) -> list[TrackedSymbolInfo]:
        records = await self._symbols.list_active()
        return [self._tracked_info(record) for record in records]

    async def system_stats(self) -> SystemStats:
        return SystemStats(
            active_jobs=self._scheduler.job_count(),
            total_symbols=len(await self._symbols.list_all()),
            total_prices=await self._prices.count(),
            uptime=round(time.monotonic() - self._started_at, 3),
            memory_usage=_memory_usage(),
        )

    async def _build_summary(self, symbol: str) -> StockSummary:
        await self._symbols.get(symbol)
        latest = await self._latest_or_404(symbol)
        return await self._assemble(symbol, latest)

    async def _latest_or_404(self, symbol: str) -> PricePoint:
        latest = await self._prices.latest(symbol)
        if latest is None:
            raise NotFound(f"No data available for symbol {symbol}")
        return latest

    async def _assemble(self, symbol: str, latest: PricePoint) -> StockSummary:
        moving_average = await self._prices.moving_average(symbol, MOVING_AVERAGE_WINDOW)
        history = await self._prices.recent(symbol, HISTORY_SIZE)
        return StockSummary(
            symbol=symbol,
            current_price=float(latest.price),
            last_updated=latest.timestamp,
            moving_average=moving_average or 0.0,
            price_history=[
                PriceHistoryItem(price=float(p.price), timestamp=p.timestamp) for p in history
            ],
        )

    def _tracked_info(self, record: TrackedSymbol) -> TrackedSymbolInfo:
        job = self._scheduler.job_status(record.symbol)
        return TrackedSymbolInfo(
            symbol=record.symbol,
            is_active=record.is_active,
            check_interval=record.check_interval_ms,
            last_checked=record.last_checked_at,
            job_status=job.status if job else JobState.UNKNOWN,
        )
