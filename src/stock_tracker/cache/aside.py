"""Cache-aside helper shared by every cached read path."""
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from stock_tracker.cache.store import CacheStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _identity(value: Any) -> Any:
    return value


class CacheAside(Generic[T]):
    """One cached namespace: a key prefix, a TTL, and how values are (de)serialized.

    get_or_load() checks the cache, and on a miss runs the loader and stores its
    result. A cached value that no longer decodes is treated as a miss.
    """

    def __init__(
        self,
        store: CacheStore,
        prefix: str,
        ttl_seconds: int,
        *,
        encode: Callable[[T], Any] = _identity,
        decode: Callable[[Any], T] = _identity,
    ) -> None:
        self._store = store
        self.prefix = prefix
        self.ttl_seconds = ttl_seconds
        self._encode = encode
        self._decode = decode

    def key(self, ident: str) -> str:
        return f"{self.prefix}{ident}"

    async def peek(self, ident: str) -> T | None:
        """Cached value for ident, or None on miss."""
        raw = await self._store.get(self.key(ident))
        if raw is None:
            return None
        try:
            return self._decode(raw)
        except ValueError as exc:
            logger.warning("Discarding undecodable cache entry %s: %s", self.key(ident), exc)
            return None

    async def put(self, ident: str, value: T) -> None:
        await self._store.set(self.key(ident), self._encode(value), self.ttl_seconds)

    async def invalidate(self, ident: str) -> None:
        await self._store.delete(self.key(ident))

    async def get_or_load(self, ident: str, loader: Callable[[], Awaitable[T]]) -> T:
        cached = await self.peek(ident)
        if cached is not None:
            logger.debug("Cache hit for %s", self.key(ident))
            return cached
        value = await loader()
        await self.put(ident, value)
        return value
