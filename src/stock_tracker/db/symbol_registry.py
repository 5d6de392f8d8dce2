"""Persistence for tracked symbols."""
import asyncio
from typing import Any

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlmodel import col, select

from stock_tracker.db.models import TrackedSymbol
from stock_tracker.db.sessions import get_session
from stock_tracker.utils import utcnow


class SymbolRegistry:
    """Backing store for TrackedSymbol rows. No caching, no validation."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _create(self, record: TrackedSymbol) -> TrackedSymbol:
        with get_session(self._engine) as session:
            session.add(record)
            session.flush()
            session.refresh(record)
        return record

    def _find_one(self, symbol: str) -> TrackedSymbol | None:
        with get_session(self._engine) as session:
            return session.get(TrackedSymbol, symbol)

    def _find_all(self, is_active: bool | None) -> list[TrackedSymbol]:
        with get_session(self._engine) as session:
            stmt = select(TrackedSymbol)
            if is_active is not None:
                stmt = stmt.where(TrackedSymbol.is_active == is_active)
            stmt = stmt.order_by(col(TrackedSymbol.created_at).desc())
            return list(session.exec(stmt).all())

    def _update(self, symbol: str, changes: dict[str, Any]) -> TrackedSymbol:
        with get_session(self._engine) as session:
            record = session.get(TrackedSymbol, symbol)
            if record is None:
                raise LookupError(f"Tracked symbol {symbol} does not exist")
            for field, value in changes.items():
                setattr(record, field, value)
            session.add(record)
            session.flush()
            session.refresh(record)
            return record

    def _exists(self, symbol: str) -> bool:
        with get_session(self._engine) as session:
            stmt = select(func.count()).select_from(TrackedSymbol).where(
                TrackedSymbol.symbol == symbol
            )
            return int(session.exec(stmt).one() or 0) > 0

    async def create(self, record: TrackedSymbol) -> TrackedSymbol:
        return await asyncio.to_thread(self._create, record)

    async def find_one(self, symbol: str) -> TrackedSymbol | None:
        return await asyncio.to_thread(self._find_one, symbol)

    async def find_all(self, is_active: bool | None = None) -> list[TrackedSymbol]:
        """All records (optionally filtered by is_active), newest first."""
        return await asyncio.to_thread(self._find_all, is_active)

    async def update(self, symbol: str, **changes: Any) -> TrackedSymbol:
        """Apply field changes; raises LookupError if the symbol has no record."""
        return await asyncio.to_thread(self._update, symbol, changes)

    async def update_last_checked(self, symbol: str) -> TrackedSymbol:
        return await self.update(symbol, last_checked_at=utcnow())

    async def exists(self, symbol: str) -> bool:
        return await asyncio.to_thread(self._exists, symbol)
