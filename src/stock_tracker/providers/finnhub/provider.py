"""Finnhub quote provider with retry and response validation."""
import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx
from pydantic import ValidationError as PayloadValidationError

from stock_tracker.config import Settings
from stock_tracker.errors import ExternalServiceError, UpstreamErrorKind
from stock_tracker.providers.base import QuoteProviderABC
from stock_tracker.providers.finnhub.models import (FinnhubQuoteParams,
                                                    FinnhubQuotePayload)
from stock_tracker.schemas import Quote
from stock_tracker.utils import normalize_stock_symbol, parse_timestamp

logger = logging.getLogger(__name__)

_NON_RETRYABLE: dict[int, tuple[UpstreamErrorKind, str]] = {
    403: (UpstreamErrorKind.AUTH, "API key is invalid or rate limit exceeded"),
    404: (UpstreamErrorKind.NOT_FOUND, "Symbol {symbol} not found"),
    429: (UpstreamErrorKind.RATE_LIMIT, "Rate limit exceeded"),
}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"


class FinnhubProvider(QuoteProviderABC):
    """Quote provider for stocks via the Finnhub REST API.

    Network errors and 5xx responses are retried with exponential backoff:
    the delay before retry k is retry_delay_ms * 2**(k-1). 403, 404 and 429 fail
    immediately. A 200 whose payload is malformed, or reports a current price of
    exactly 0 (Finnhub's answer for unknown symbols), is an error too.
    """

    name = "Finnhub"
    BASE_URL = "https://finnhub.io/api/v1"
    TOKEN_HEADER = "X-Finnhub-Token"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = BASE_URL,
        timeout_ms: int = 10000,
        retry_attempts: int = 3,
        retry_delay_ms: int = 1000,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the Finnhub provider.

        Args:
            api_key: Finnhub API token, sent in the X-Finnhub-Token header.
            base_url: API root (no trailing /quote).
            timeout_ms: Per-request timeout in milliseconds.
            retry_attempts: Total attempts for retryable failures (>= 1).
            retry_delay_ms: Base backoff delay in milliseconds.
            transport: Optional httpx transport (tests pass httpx.MockTransport).
            sleep: Awaitable used between attempts.
        """
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay = retry_delay_ms / 1000
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Accept": "application/json", self.TOKEN_HEADER: api_key},
            timeout=timeout_ms / 1000,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "FinnhubProvider":
        return cls(
            settings.finnhub_api_key,
            base_url=settings.finnhub_base_url,
            timeout_ms=settings.finnhub_timeout_ms,
            retry_attempts=settings.finnhub_retry_attempts,
            retry_delay_ms=settings.finnhub_retry_delay_ms,
        )

    def backoff_delay(self, retry: int) -> float:
        """Seconds to wait before retry number `retry` (1-based)."""
        return self._retry_delay * 2 ** (retry - 1)

    async def get_quote(self, symbol: str) -> Quote:
        """Fetch the current quote for a stock symbol."""
        sym = normalize_stock_symbol(symbol)
        params = FinnhubQuoteParams(symbol=sym).model_dump()
        reason = "Unknown error occurred"

        for attempt in range(1, self._retry_attempts + 1):
            try:
                response = await self._client.get("/quote", params=params)
            except httpx.TransportError as exc:
                reason = str(exc) or type(exc).__name__
            else:
                logger.debug("Finnhub response for %s: %s", sym, response.status_code)
                status = response.status_code
                if status < 400:
                    return self._to_quote(sym, response)
                if status in _NON_RETRYABLE:
                    kind, template = _NON_RETRYABLE[status]
                    logger.error("Finnhub error for %s: %s", sym, status)
                    raise ExternalServiceError(template.format(symbol=sym), kind)
                if status < 500:
                    raise ExternalServiceError(_error_message(response))
                reason = _error_message(response)

            if attempt < self._retry_attempts:
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "Retrying Finnhub request for %s (attempt %d/%d) in %.2fs: %s",
                    sym,
                    attempt + 1,
                    self._retry_attempts,
                    delay,
                    reason,
                )
                await self._sleep(delay)

        logger.error("Finnhub request for %s failed after %d attempts: %s", sym, self._retry_attempts, reason)
        raise ExternalServiceError(reason, UpstreamErrorKind.UNAVAILABLE)

    def _to_quote(self, symbol: str, response: httpx.Response) -> Quote:
        try:
            data = response.json()
        except ValueError as exc:
            raise ExternalServiceError(
                f"Invalid API response format for symbol {symbol}",
                UpstreamErrorKind.INVALID_RESPONSE,
            ) from exc

        if isinstance(data, dict) and data.get("c") == 0:
            raise ExternalServiceError(
                f"No data available for symbol {symbol}", UpstreamErrorKind.NO_DATA
            )
        try:
            payload = FinnhubQuotePayload.model_validate(data)
        except PayloadValidationError as exc:
            logger.error("Invalid Finnhub quote response for %s: %s", symbol, exc)
            raise ExternalServiceError(
                f"Invalid API response format for symbol {symbol}",
                UpstreamErrorKind.INVALID_RESPONSE,
            ) from exc

        return Quote(
            symbol=symbol,
            price=payload.c,
            timestamp=parse_timestamp(payload.t),
            change=payload.d,
            percent_change=payload.dp,
            high=payload.h,
            low=payload.l,
            open=payload.o,
            previous_close=payload.pc,
            volume=int(payload.v) if payload.v is not None else None,
        )

    async def close(self) -> None:
        await self._client.aclose()
