"""Database package: models, session management and stores."""
from stock_tracker.db.models import PricePoint, TrackedSymbol
from stock_tracker.db.price_store import PriceStats, PriceStore
from stock_tracker.db.symbol_registry import SymbolRegistry

__all__ = ["PricePoint", "PriceStats", "PriceStore", "SymbolRegistry", "TrackedSymbol"]
