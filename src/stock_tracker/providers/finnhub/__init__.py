from stock_tracker.providers.finnhub.provider import FinnhubProvider

__all__ = ["FinnhubProvider"]
