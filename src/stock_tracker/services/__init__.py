"""Service layer: symbol registry, tracking scheduler and stock queries."""
from stock_tracker.services.scheduler import Job, StartResult, TrackingScheduler
from stock_tracker.services.stocks import StockService
from stock_tracker.services.symbols import SymbolService, validate_symbol_format

__all__ = [
    "Job",
    "StartResult",
    "StockService",
    "SymbolService",
    "TrackingScheduler",
    "validate_symbol_format",
]
