"""Append-only per-symbol price time series.

Queries order by timestamp descending (id descending on ties), so "latest" and
"last N" are the head of the result. SQLModel sessions are synchronous; every
public method runs its session in a worker thread so the event loop never
blocks on the database.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, func
from sqlalchemy.engine import Engine
from sqlmodel import col, select

from stock_tracker.db.models import PricePoint
from stock_tracker.db.sessions import get_session

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 10


@dataclass(frozen=True)
class PriceStats:
    """Aggregate over every stored price for a symbol."""

    average: float | None
    min: float | None
    max: float | None
    count: int


def _newest_first():
    return (col(PricePoint.timestamp).desc(), col(PricePoint.id).desc())


class PriceStore:
    """Time-series storage for sampled prices."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # ---- sync bodies (run in a worker thread) ----

    def _append(self, point: PricePoint) -> PricePoint:
        with get_session(self._engine) as session:
            session.add(point)
            session.flush()
            session.refresh(point)
        return point

    def _recent(self, symbol: str, n: int) -> list[PricePoint]:
        if n <= 0:
            return []
        with get_session(self._engine) as session:
            stmt = (
                select(PricePoint)
                .where(PricePoint.symbol == symbol)
                .order_by(*_newest_first())
                .limit(n)
            )
            return list(session.exec(stmt).all())

    def _range_between(self, symbol: str, start: datetime, end: datetime) -> list[PricePoint]:
        with get_session(self._engine) as session:
            stmt = (
                select(PricePoint)
                .where(
                    PricePoint.symbol == symbol,
                    PricePoint.timestamp >= start,
                    PricePoint.timestamp <= end,
                )
                .order_by(*_newest_first())
            )
            return list(session.exec(stmt).all())

    def _stats(self, symbol: str) -> PriceStats:
        with get_session(self._engine) as session:
            stmt = select(
                func.avg(PricePoint.price),
                func.min(PricePoint.price),
                func.max(PricePoint.price),
                func.count(PricePoint.id),
            ).where(PricePoint.symbol == symbol)
            avg, low, high, count = session.exec(stmt).one()
        return PriceStats(
            average=float(avg) if avg is not None else None,
            min=float(low) if low is not None else None,
            max=float(high) if high is not None else None,
            count=int(count or 0),
        )

    def _count(self, symbol: str | None) -> int:
        with get_session(self._engine) as session:
            stmt = select(func.count(PricePoint.id))
            if symbol is not None:
                stmt = stmt.where(PricePoint.symbol == symbol)
            return int(session.exec(stmt).one() or 0)

    def _purge_older_than(self, symbol: str, cutoff: datetime) -> int:
        with get_session(self._engine) as session:
            stmt = delete(PricePoint).where(
                PricePoint.symbol == symbol,
                PricePoint.timestamp < cutoff,
            )
            result = session.connection().execute(stmt)
            return int(result.rowcount or 0)

    # ---- async API ----

    async def append(self, point: PricePoint) -> PricePoint:
        """Persist a new price point and return it with its id."""
        return await asyncio.to_thread(self._append, point)

    async def latest(self, symbol: str) -> PricePoint | None:
        """Most recent price point, or None if the symbol has no history."""
        rows = await asyncio.to_thread(self._recent, symbol, 1)
        return rows[0] if rows else None

    async def recent(self, symbol: str, n: int = DEFAULT_WINDOW) -> list[PricePoint]:
        """Up to n most recent points, newest first."""
        return await asyncio.to_thread(self._recent, symbol, n)

    async def range_between(
        self, symbol: str, start: datetime, end: datetime
    ) -> list[PricePoint]:
        """Points with start <= timestamp <= end, newest first."""
        return await asyncio.to_thread(self._range_between, symbol, start, end)

    async def moving_average(self, symbol: str, n: int = DEFAULT_WINDOW) -> float | None:
        """Arithmetic mean of the n most recent prices; None when there are none.

        Recomputed from storage on every call; nothing is carried between calls.
        """
        rows = await self.recent(symbol, n)
        if not rows:
            return None
        return float(sum(row.price for row in rows) / len(rows))

    async def stats(self, symbol: str) -> PriceStats:
        return await asyncio.to_thread(self._stats, symbol)

    async def count(self, symbol: str | None = None) -> int:
        """Number of stored points for symbol, or across all symbols when None."""
        return await asyncio.to_thread(self._count, symbol)

    async def purge_older_than(self, symbol: str, cutoff: datetime) -> int:
        """Delete points strictly older than cutoff; return how many were removed."""
        deleted = await asyncio.to_thread(self._purge_older_than, symbol, cutoff)
        if deleted:
            logger.info("Purged %d price points for %s older than %s", deleted, symbol, cutoff)
        return deleted
