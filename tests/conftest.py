"""Shared fixtures: in-memory SQLite engine, in-memory cache and a stub quote provider."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from stock_tracker.db import PricePoint, PriceStore, SymbolRegistry
from stock_tracker.db.sessions import create_db_engine, init_db
from stock_tracker.errors import ExternalServiceError, UpstreamErrorKind
from stock_tracker.providers import QuoteProviderABC
from stock_tracker.schemas import Quote
from stock_tracker.services import SymbolService, TrackingScheduler
from stock_tracker.utils import utcnow


class MemoryCache:
    """CacheStore double keeping values in a dict; TTLs are recorded, not enforced."""

    def __init__(self) -> None:
        self.data: dict[str, object] = {}
        self.ttls: dict[str, int] = {}
        self.gets: list[str] = []

    async def get(self, key):
        self.gets.append(key)
        return self.data.get(key)

    async def set(self, key, value, ttl_seconds=300):
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def delete(self, key):
        self.data.pop(key, None)
        self.ttls.pop(key, None)

    async def health_check(self):
        return True


class StubProvider(QuoteProviderABC):
    """Answers from a symbol -> price (or exception) table and counts calls."""

    name = "Stub"

    def __init__(self, prices=None) -> None:
        self.prices: dict[str, object] = dict(prices or {})
        self.calls: list[str] = []

    async def get_quote(self, symbol):
        self.calls.append(symbol)
        answer = self.prices.get(symbol)
        if answer is None:
            raise ExternalServiceError(f"Symbol {symbol} not found", UpstreamErrorKind.NOT_FOUND)
        if isinstance(answer, Exception):
            raise answer
        return Quote(symbol=symbol, price=answer, timestamp=utcnow(), volume=1000)


def point(symbol: str, price, minutes_ago: int = 0, volume=None) -> PricePoint:
    return PricePoint(
        symbol=symbol,
        price=Decimal(str(price)),
        volume=volume,
        timestamp=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago),
    )


@pytest.fixture
def engine():
    eng = create_db_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def provider():
    return StubProvider({"AAPL": 150.25, "MSFT": 410.5})


@pytest.fixture
def prices(engine):
    return PriceStore(engine)


@pytest.fixture
def registry(engine):
    return SymbolRegistry(engine)


@pytest.fixture
def symbols(registry, cache, provider):
    return SymbolService(registry, cache, provider)


@pytest.fixture
def scheduler(symbols, provider, prices):
    return TrackingScheduler(symbols, provider, prices)
