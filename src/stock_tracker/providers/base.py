"""Abstract base class for quote providers."""
from abc import ABC, abstractmethod

from stock_tracker.errors import ExternalServiceError, UpstreamErrorKind
from stock_tracker.schemas import Quote

# Upstream outcomes that mean "this symbol does not exist", as opposed to an outage.
SYMBOL_MISSING_KINDS = frozenset({UpstreamErrorKind.NOT_FOUND, UpstreamErrorKind.NO_DATA})


class QuoteProviderABC(ABC):
    """Interface the tracker uses to sample a price for one symbol."""

    name: str = "Provider"

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        """Fetch the current quote for a symbol.

        Raises:
            ExternalServiceError: on any upstream failure, after retries where
                the failure is transient.
        """

    async def validate_symbol(self, symbol: str) -> bool:
        """True if the feed returns a positive price for symbol.

        Unknown symbols answer False; outages, auth and rate-limit failures raise
        so callers do not mistake them for a missing symbol.
        """
        try:
            quote = await self.get_quote(symbol)
        except ExternalServiceError as exc:
            if exc.kind in SYMBOL_MISSING_KINDS:
                return False
            raise
        return quote.price > 0

    async def health_check(self) -> bool:
        """True if a quote for a well-known symbol can be fetched."""
        try:
            await self.get_quote("AAPL")
        except ExternalServiceError:
            return False
        return True

    async def close(self) -> None:
        """Clean up resources (connections, clients).

        Override in subclasses if cleanup is needed.
        """

    async def __aenter__(self) -> "QuoteProviderABC":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()
