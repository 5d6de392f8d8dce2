import asyncio
from datetime import timedelta

import pytest

from stock_tracker.errors import (Conflict, ExternalServiceError, NotFound,
                                  UpstreamErrorKind, ValidationError)
from stock_tracker.services.symbols import (DEFAULT_CHECK_INTERVAL_MS,
                                            EXISTENCE_TTL_SECONDS,
                                            VALIDATION_TTL_SECONDS,
                                            validate_symbol_format)


def run(coro):
    return asyncio.run(coro)


@pytest.mark.parametrize("symbol", ["A", "AAPL", "GOOGL"])
def test_accepts_one_to_five_uppercase_letters(symbol):
    validate_symbol_format(symbol)


@pytest.mark.parametrize("symbol", ["", "aapl", "123", "TOOLONG", "BRK.B", "AB1", " AAPL", "AAPL\n", None])
def test_rejects_malformed_symbols(symbol):
    with pytest.raises(ValidationError):
        validate_symbol_format(symbol)


def test_exists_upstream_is_cached(symbols, provider, cache):
    async def scenario():
        return [await symbols.exists_upstream("AAPL"), await symbols.exists_upstream("AAPL")]

    assert run(scenario()) == [True, True]
    assert provider.calls == ["AAPL"]
    assert cache.data["symbol:valid:AAPL"] is True
    assert cache.ttls["symbol:valid:AAPL"] == VALIDATION_TTL_SECONDS


def test_unknown_symbol_is_cached_as_false(symbols, provider, cache):
    async def scenario():
        return [await symbols.exists_upstream("ZZZZ"), await symbols.exists_upstream("ZZZZ")]

    assert run(scenario()) == [False, False]
    assert provider.calls == ["ZZZZ"]
    assert cache.data["symbol:valid:ZZZZ"] is False


def test_feed_outage_is_not_cached(symbols, provider, cache):
    provider.prices["AAPL"] = ExternalServiceError("down", UpstreamErrorKind.UNAVAILABLE)

    with pytest.raises(ExternalServiceError):
        run(symbols.exists_upstream("AAPL"))
    assert "symbol:valid:AAPL" not in cache.data


def test_cached_validation_skips_provider(symbols, provider, cache):
    cache.data["symbol:valid:NVDA"] = True

    assert run(symbols.exists_upstream("NVDA")) is True
    assert provider.calls == []


def test_create_registers_active_symbol(symbols, cache):
    record = run(symbols.create("AAPL"))

    assert record.symbol == "AAPL"
    assert record.is_active is True
    assert record.check_interval_ms == DEFAULT_CHECK_INTERVAL_MS
    assert run(symbols.symbol_exists("AAPL")) is True
    # create() invalidates both cached entries
    assert "symbol:valid:AAPL" not in cache.data
    assert "symbol:AAPL" not in cache.data


def test_create_unknown_symbol_is_not_found(symbols):
    with pytest.raises(NotFound):
        run(symbols.create("ZZZZ"))
    assert run(symbols.symbol_exists("ZZZZ")) is False


def test_create_active_symbol_conflicts(symbols):
    async def scenario():
        await symbols.create("AAPL")
        await symbols.create("AAPL")

    with pytest.raises(Conflict):
        run(scenario())


def test_create_reactivates_inactive_symbol(symbols, provider):
    async def scenario():
        await symbols.create("AAPL")
        await symbols.deactivate("AAPL")
        return await symbols.create("AAPL")

    record = run(scenario())

    assert record.is_active is True
    # reactivation does not ask the feed again
    assert provider.calls == ["AAPL"]


def test_get_caches_existence(symbols, cache):
    async def scenario():
        await symbols.create("AAPL")
        return await symbols.get("AAPL")

    assert run(scenario()).symbol == "AAPL"
    assert cache.data["symbol:AAPL"] is True
    assert cache.ttls["symbol:AAPL"] == EXISTENCE_TTL_SECONDS


def test_get_missing_symbol_is_negatively_cached(symbols, cache):
    with pytest.raises(NotFound):
        run(symbols.get("MSFT"))
    assert cache.data["symbol:MSFT"] is False


def test_cached_false_short_circuits_registry(symbols, cache):
    async def scenario():
        await symbols.create("AAPL")
        cache.data["symbol:AAPL"] = False
        await symbols.get("AAPL")

    with pytest.raises(NotFound):
        run(scenario())


def test_update_and_deactivate(symbols):
    async def scenario():
        await symbols.create("AAPL")
        updated = await symbols.update("AAPL", check_interval_ms=5000)
        deactivated = await symbols.deactivate("AAPL")
        return updated, deactivated, await symbols.list_active(), await symbols.list_all()

    updated, deactivated, active, everything = run(scenario())

    assert updated.check_interval_ms == 5000
    assert deactivated.is_active is False
    assert active == []
    assert [r.symbol for r in everything] == ["AAPL"]


def test_update_last_checked(symbols, registry):
    async def scenario():
        await symbols.create("AAPL")
        await symbols.update_last_checked("AAPL")
        return await registry.find_one("AAPL")

    record = run(scenario())

    assert record.last_checked_at is not None
    assert record.last_checked_at.utcoffset() == timedelta(0)
    assert record.created_at <= record.last_checked_at
