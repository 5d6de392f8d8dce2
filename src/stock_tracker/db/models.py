"""Database models for the stock tracker.

Tracked symbols and their sampled price history are persisted. Read responses
are cached in Redis and are never stored here. Datetime fields hold aware UTC
values; SQLModel maps them to UTCDateTime columns.
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Column, Index
from sqlmodel import Field, SQLModel

from stock_tracker.utils import utcnow


class TrackedSymbol(SQLModel, table=True):
    """A symbol registered for periodic price sampling."""

    __tablename__ = "tracked_symbol"

    symbol: str = Field(primary_key=True, max_length=5)
    is_active: bool = Field(default=True, index=True)
    check_interval_ms: int = Field(default=60000)
    last_checked_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)


class PricePoint(SQLModel, table=True):
    """One sampled price. Rows are append-only; retention deletes by age."""

    __tablename__ = "price_point"
    __table_args__ = (Index("ix_price_point_symbol_timestamp", "symbol", "timestamp"),)

    id: int | None = Field(default=None, primary_key=True)
    symbol: str = Field(foreign_key="tracked_symbol.symbol", max_length=5)
    price: Decimal = Field(max_digits=18, decimal_places=6)
    volume: int | None = Field(default=None, ge=0, sa_column=Column(BigInteger, nullable=True))
    timestamp: datetime
