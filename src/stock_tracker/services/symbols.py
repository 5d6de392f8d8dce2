"""Symbol registry service: format validation, upstream validation and existence caching."""
import logging

from stock_tracker.cache import CacheAside, CacheStore
from stock_tracker.db import SymbolRegistry, TrackedSymbol
from stock_tracker.errors import Conflict, NotFound, ValidationError
from stock_tracker.providers import QuoteProviderABC
from stock_tracker.utils import is_valid_symbol

logger = logging.getLogger(__name__)

EXISTENCE_PREFIX = "symbol:"
VALIDATION_PREFIX = "symbol:valid:"
EXISTENCE_TTL_SECONDS = 300
VALIDATION_TTL_SECONDS = 3600
DEFAULT_CHECK_INTERVAL_MS = 60000


def validate_symbol_format(symbol: str) -> None:
    """Raise ValidationError unless symbol is 1-5 uppercase letters."""
    if not isinstance(symbol, str) or not is_valid_symbol(symbol):
        raise ValidationError(
            f"Invalid symbol format: {symbol}. Symbol must be 1-5 uppercase letters"
        )


class SymbolService:
    """Tracks which symbols are registered, with cache-aside existence checks.

    Two caches sit in front of slow lookups:
    - validation ("symbol:valid:SYM", 1h): does the feed know the symbol?
    - existence ("symbol:SYM", 5min): does the registry have a record? A cached
      False short-circuits to NotFound; a cached True still reads the record.
    """

    def __init__(
        self,
        registry: SymbolRegistry,
        cache: CacheStore,
        provider: QuoteProviderABC,
        *,
        default_interval_ms: int = DEFAULT_CHECK_INTERVAL_MS,
    ) -> None:
        self._registry = registry
        self._provider = provider
        self._default_interval_ms = default_interval_ms
        self._validation = CacheAside[bool](cache, VALIDATION_PREFIX, VALIDATION_TTL_SECONDS)
        self._existence = CacheAside[bool](cache, EXISTENCE_PREFIX, EXISTENCE_TTL_SECONDS)

    def validate_format(self, symbol: str) -> None:
        validate_symbol_format(symbol)

    async def exists_upstream(self, symbol: str) -> bool:
        """Whether the price feed knows symbol; cached for an hour either way.

        Transient feed failures raise ExternalServiceError and are not cached.
        """
        self.validate_format(symbol)

        async def _ask_provider() -> bool:
            is_valid = await self._provider.validate_symbol(symbol)
            logger.debug("Upstream validation for %s: %s", symbol, is_valid)
            return is_valid

        return await self._validation.get_or_load(symbol, _ask_provider)

    async def create(self, symbol: str) -> TrackedSymbol:
        """Register symbol for tracking, or reactivate an inactive record.

        Raises:
            Conflict: symbol is already actively tracked.
            NotFound: the price feed does not know symbol.
        """
        self.validate_format(symbol)

        existing = await self._registry.find_one(symbol)
        if existing is not None:
            if existing.is_active:
                raise Conflict(f"Symbol {symbol} is already being tracked")
            record = await self._registry.update(symbol, is_active=True)
            await self.invalidate(symbol)
            logger.info("Reactivated symbol %s", symbol)
            return record

        if not await self.exists_upstream(symbol):
            raise NotFound(f"Symbol {symbol} not found")

        record = await self._registry.create(
            TrackedSymbol(
                symbol=symbol,
                is_active=True,
                check_interval_ms=self._default_interval_ms,
            )
        )
        await self.invalidate(symbol)
        logger.info("Created symbol configuration for %s", symbol)
        return record

    async def get(self, symbol: str) -> TrackedSymbol:
        """Registry record for symbol. Raises NotFound if there is none."""
        self.validate_format(symbol)

        if await self._existence.peek(symbol) is False:
            raise NotFound(f"Symbol {symbol} not found")

        record = await self._registry.find_one(symbol)
        await self._existence.put(symbol, record is not None)
        if record is None:
            raise NotFound(f"Symbol {symbol} not found")
        return record

    async def update(
        self,
        symbol: str,
        *,
        is_active: bool | None = None,
        check_interval_ms: int | None = None,
    ) -> TrackedSymbol:
        await self.get(symbol)
        changes: dict[str, object] = {}
        if is_active is not None:
            changes["is_active"] = is_active
        if check_interval_ms is not None:
            changes["check_interval_ms"] = check_interval_ms
        record = await self._registry.update(symbol, **changes)
        await self.invalidate(symbol)
        return record

    async def deactivate(self, symbol: str) -> TrackedSymbol:
        return await self.update(symbol, is_active=False)

    async def update_last_checked(self, symbol: str) -> None:
        await self._registry.update_last_checked(symbol)

    async def symbol_exists(self, symbol: str) -> bool:
        """Registry-only existence check (no cache, no upstream call)."""
        self.validate_format(symbol)
        return await self._registry.exists(symbol)

    async def list_active(self) -> list[TrackedSymbol]:
        return await self._registry.find_all(is_active=True)

    async def list_all(self) -> list[TrackedSymbol]:
        return await self._registry.find_all()

    async def invalidate(self, symbol: str) -> None:
        """Drop both cached entries for symbol."""
        await self._existence.invalidate(symbol)
        await self._validation.invalidate(symbol)
