"""Shared utilities for the stock tracker."""
import re
from datetime import datetime, timezone

SYMBOL_PATTERN = re.compile(r"[A-Z]{1,5}")


def utcnow() -> datetime:
    """Current time as an aware UTC datetime (the form stored in the database)."""
    return datetime.now(timezone.utc)


def parse_timestamp(ts: float | None) -> datetime:
    """Convert optional Unix timestamp (seconds) to aware UTC datetime; fallback to now."""
    if ts is None:
        return utcnow()
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def normalize_stock_symbol(symbol: str) -> str:
    """Normalize a stock symbol (strip + uppercase)."""
    return symbol.strip().upper()


def is_valid_symbol(symbol: str) -> bool:
    """True if the whole of symbol is 1-5 uppercase ASCII letters."""
    return SYMBOL_PATTERN.fullmatch(symbol) is not None
