"""Stock tracking routes.

Handlers only normalize the path symbol and call StockService; domain errors
are mapped to HTTP responses by the handler registered in main.py.
"""
from typing import Annotated

from fastapi import APIRouter, Path

from stock_tracker.deps import StockServiceDep
from stock_tracker.schemas import (DetailedStock, StartTrackingResponse,
                                   StockSummary, StopTrackingResponse,
                                   SystemStats, TrackedSymbolInfo)
from stock_tracker.utils import normalize_stock_symbol

router = APIRouter(prefix="/stock", tags=["stock"])

SymbolPath = Annotated[
    str, Path(description="Stock symbol (1-5 uppercase letters)", examples=["AAPL"])
]

_ERRORS = {
    400: {"description": "Invalid symbol format"},
    404: {"description": "Symbol not found or not being tracked"},
}


@router.get("", response_model=list[TrackedSymbolInfo])
async def list_tracked_symbols(service: StockServiceDep) -> list[TrackedSymbolInfo]:
    """List actively tracked symbols with their job status."""
    return await service.list_tracked()


@router.get("/system/stats", response_model=SystemStats)
async def get_system_stats(service: StockServiceDep) -> SystemStats:
    """Job, symbol and price counts plus process uptime and memory."""
    return await service.system_stats()


@router.put(
    "/{symbol}",
    response_model=StartTrackingResponse,
    responses={
        **_ERRORS,
        409: {"description": "Symbol is already being tracked"},
        503: {"description": "Price feed error"},
    },
)
async def start_tracking(
    symbol: SymbolPath, service: StockServiceDep
) -> StartTrackingResponse:
    """Start tracking a stock symbol.

    Validates the symbol against the price feed, schedules a recurring fetch
    and stores one price immediately.
    """
    return await service.start_tracking(normalize_stock_symbol(symbol))


@router.get("/{symbol}", response_model=StockSummary, responses=_ERRORS)
async def get_stock(symbol: SymbolPath, service: StockServiceDep) -> StockSummary:
    """Get the current price, moving average and recent history."""
    return await service.get_summary(normalize_stock_symbol(symbol))


@router.get("/{symbol}/detailed", response_model=DetailedStock, responses=_ERRORS)
async def get_stock_detailed(
    symbol: SymbolPath, service: StockServiceDep
) -> DetailedStock:
    """Get the summary plus tracking status and 24h analytics fields."""
    return await service.get_detailed(normalize_stock_symbol(symbol))


@router.delete("/{symbol}", response_model=StopTrackingResponse, responses=_ERRORS)
async def stop_tracking(
    symbol: SymbolPath, service: StockServiceDep
) -> StopTrackingResponse:
    """Stop tracking a symbol. Stored history stays queryable."""
    return await service.stop_and_clear(normalize_stock_symbol(symbol))
