"""Health checks over the database, the cache and the price feed."""
import asyncio
from collections.abc import Awaitable, Callable

from stock_tracker.schemas import HealthStatus


class HealthService:
    """Runs each dependency probe; the service is "ok" when storage and cache are up.

    The price feed is reported but does not degrade status, since a feed outage
    only skips scheduled cycles.
    """

    def __init__(
        self,
        database_check: Callable[[], bool],
        cache_check: Callable[[], Awaitable[bool]],
        feed_check: Callable[[], Awaitable[bool]],
    ) -> None:
        self._database_check = database_check
        self._cache_check = cache_check
        self._feed_check = feed_check

    async def check(self) -> HealthStatus:
        database, cache, feed = await asyncio.gather(
            asyncio.to_thread(self._database_check),
            self._cache_check(),
            self._feed_check(),
        )
        return HealthStatus(
            status="ok" if database and cache else "degraded",
            database=database,
            cache=cache,
            price_feed=feed,
        )
