"""Quote providers for the stock tracker.

- FinnhubProvider: stock quotes via the Finnhub REST API

Providers implement QuoteProviderABC and return the canonical Quote.

Example:
    async with FinnhubProvider(api_key) as provider:
        quote = await provider.get_quote("AAPL")
        print(f"{quote.symbol}: ${quote.price}")
"""
from stock_tracker.providers.base import QuoteProviderABC
from stock_tracker.providers.finnhub import FinnhubProvider

__all__ = ["FinnhubProvider", "QuoteProviderABC"]
