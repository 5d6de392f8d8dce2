"""Redis-backed cache store and the cache-aside helper."""
from stock_tracker.cache.aside import CacheAside
from stock_tracker.cache.store import CacheStore, RedisCacheStore

__all__ = ["CacheAside", "CacheStore", "RedisCacheStore"]
