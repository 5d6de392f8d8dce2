"""Pydantic schemas for API responses and runtime values. Not persisted to DB.

API payloads use camelCase on the wire; Python code uses snake_case.
"""
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for wire models: camelCase aliases, populate by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Quote(BaseModel):
    """Canonical point-in-time quote from the price feed."""

    symbol: str
    price: float
    timestamp: datetime
    change: float | None = None
    percent_change: float | None = None
    high: float | None = None
    low: float | None = None
    open: float | None = None
    previous_close: float | None = None
    volume: int | None = None


class JobState(str, Enum):
    ACTIVE = "ACTIVE"
    UNKNOWN = "UNKNOWN"


class JobStatus(ApiModel):
    symbol: str
    status: JobState = JobState.ACTIVE


class PriceHistoryItem(ApiModel):
    price: float
    timestamp: datetime


class StockSummary(ApiModel):
    """Latest price, moving average and recent history for one symbol."""

    symbol: str
    current_price: float
    last_updated: datetime
    moving_average: float
    price_history: list[PriceHistoryItem] = Field(default_factory=list)


class TrackingStatus(ApiModel):
    is_active: bool
    check_interval: int
    last_checked: datetime | None = None
    job_status: JobState = JobState.UNKNOWN
    error_count: int = 0
    last_error: str | None = None


class DetailedStock(StockSummary):
    """Summary plus 24h analytics fields and tracking state.

    price_change, percent_change, high24h, low24h and volume24h are not computed
    from a 24h window; see services.stocks.placeholder_analytics.
    """

    price_change: float
    percent_change: float
    # to_camel would emit high24H; the wire names keep the lowercase h
    high24h: float = Field(alias="high24h")
    low24h: float = Field(alias="low24h")
    volume24h: int = Field(alias="volume24h")
    tracking: TrackingStatus


class StartTrackingResponse(ApiModel):
    job_id: str
    message: str


class StopTrackingResponse(ApiModel):
    message: str


class TrackedSymbolInfo(ApiModel):
    symbol: str
    is_active: bool
    check_interval: int
    last_checked: datetime | None = None
    job_status: JobState = JobState.UNKNOWN


class SystemStats(ApiModel):
    active_jobs: int
    total_symbols: int
    total_prices: int
    uptime: float
    memory_usage: dict[str, int]


class HealthStatus(ApiModel):
    status: str
    database: bool
    cache: bool
    price_feed: bool


__all__ = [
    "DetailedStock",
    "HealthStatus",
    "JobState",
    "JobStatus",
    "PriceHistoryItem",
    "Quote",
    "StartTrackingResponse",
    "StockSummary",
    "StopTrackingResponse",
    "SystemStats",
    "TrackedSymbolInfo",
    "TrackingStatus",
]
