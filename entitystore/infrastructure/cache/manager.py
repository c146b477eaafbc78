"""Static cache managers.

A cache manager prepares keys and serves read-through lookups: ``get`` returns
the cached value for a key or computes it with ``acquire`` and stores it.
Concurrent misses on the same key are not coalesced; both compute and the
last write wins.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any

from aiocache import SimpleMemoryCache
from loguru import logger

from entitystore.config import settings
from entitystore.infrastructure.cache.keys import CacheKey, normalize_key_argument

_MISSING = object()


@dataclass(frozen=True)
class ValueCodec[T]:
    """Converts cached values to and from JSON-compatible data."""

    dump: Callable[[T], Any]
    load: Callable[[Any], T]


class StaticCacheManager(ABC):
    """Base class for cache backends."""

    def __init__(
        self,
        default_cache_time: int | None = None,
        short_term_cache_time: int | None = None,
    ):
        self.default_cache_time = (
            settings.DEFAULT_CACHE_TIME
            if default_cache_time is None
            else default_cache_time
        )
        self.short_term_cache_time = (
            settings.SHORT_TERM_CACHE_TIME
            if short_term_cache_time is None
            else short_term_cache_time
        )

    # ============ Keys ============

    def prepare_key(self, cache_key: CacheKey, *args: Any) -> CacheKey:
        """Format a key template, keeping its own cache time."""
        key = cache_key.create(*args)
        if key.cache_time is None:
            return replace(key, cache_time=self.default_cache_time)
        return key

    def prepare_key_for_default_cache(self, cache_key: CacheKey, *args: Any) -> CacheKey:
        return cache_key.create(*args, cache_time=self.default_cache_time)

    def prepare_key_for_short_term_cache(
        self, cache_key: CacheKey, *args: Any
    ) -> CacheKey:
        return cache_key.create(*args, cache_time=self.short_term_cache_time)

    # ============ Read-through ============

    async def get[T](
        self,
        key: CacheKey,
        acquire: Callable[[], Awaitable[T]],
        codec: ValueCodec[T] | None = None,
    ) -> T:
        """Return the cached value for ``key``, computing and storing it on a miss.

        None results are returned but never stored.
        """
        cache_time = self._cache_time(key)
        if cache_time <= 0:
            return await acquire()

        found, value = await self._try_get(key.key, codec)
        if found:
            logger.debug(f"Cache hit: {key.key}")
            return value

        logger.debug(f"Cache miss: {key.key}")
        value = await acquire()
        if value is not None:
            await self._store(key.key, value, cache_time, codec)
        return value

    async def set[T](
        self, key: CacheKey, value: T, codec: ValueCodec[T] | None = None
    ) -> None:
        cache_time = self._cache_time(key)
        if value is None or cache_time <= 0:
            return
        await self._store(key.key, value, cache_time, codec)

    # ============ Removal ============

    async def remove(self, cache_key: CacheKey, *args: Any) -> None:
        """Remove the value stored under the prepared form of ``cache_key``."""
        key = cache_key.create(*args) if args else cache_key
        await self._remove(key.key)

    async def remove_by_prefix(self, prefix: str, *args: Any) -> int:
        """Remove every entry whose key starts with the formatted prefix."""
        if args:
            prefix = prefix.format(*(normalize_key_argument(arg) for arg in args))
        removed = await self._remove_by_prefix(prefix)
        logger.debug(f"Removed {removed} cache entries with prefix {prefix}")
        return removed

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry owned by this cache."""
        pass

    def _cache_time(self, key: CacheKey) -> int:
        return self.default_cache_time if key.cache_time is None else key.cache_time

    @abstractmethod
    async def _try_get(
        self, key: str, codec: ValueCodec[Any] | None
    ) -> tuple[bool, Any]:
        pass

    @abstractmethod
    async def _store(
        self, key: str, value: Any, cache_time: int, codec: ValueCodec[Any] | None
    ) -> None:
        pass

    @abstractmethod
    async def _remove(self, key: str) -> None:
        pass

    @abstractmethod
    async def _remove_by_prefix(self, prefix: str) -> int:
        pass


class MemoryCacheManager(StaticCacheManager):
    """Process-local cache on aiocache's ``SimpleMemoryCache``.

    Values are kept by reference. Each entry is dropped by its own expiry
    timer, whether or not the key is read again.
    """

    seconds_per_minute: float = 60

    def __init__(
        self,
        default_cache_time: int | None = None,
        short_term_cache_time: int | None = None,
    ):
        super().__init__(default_cache_time, short_term_cache_time)
        self._cache = SimpleMemoryCache(timeout=0)

    def _keys(self) -> list[str]:
        # aiocache has no key listing; the backend dict is the source of truth
        return list(self._cache._cache)

    def __len__(self) -> int:
        return len(self._keys())

    def __contains__(self, key: str) -> bool:
        return key in self._cache._cache

    async def clear(self) -> None:
        await self._cache.clear()

    async def _try_get(
        self, key: str, codec: ValueCodec[Any] | None
    ) -> tuple[bool, Any]:
        value = await self._cache.get(key, default=_MISSING)
        if value is _MISSING:
            return False, None
        return True, value

    async def _store(
        self, key: str, value: Any, cache_time: int, codec: ValueCodec[Any] | None
    ) -> None:
        await self._cache.set(key, value, ttl=cache_time * self.seconds_per_minute)

    async def _remove(self, key: str) -> None:
        await self._cache.delete(key)

    async def _remove_by_prefix(self, prefix: str) -> int:
        keys = [key for key in self._keys() if key.startswith(prefix)]
        for key in keys:
            await self._cache.delete(key)
        return len(keys)


_memory_cache_manager: MemoryCacheManager | None = None


def get_cache_manager() -> StaticCacheManager:
    """Get the cache manager selected by the CACHE_BACKEND setting."""
    if settings.CACHE_BACKEND == "redis":
        from entitystore.infrastructure.cache.redis import RedisCacheManager
        from entitystore.infrastructure.redis import get_redis_client

        return RedisCacheManager(get_redis_client())

    global _memory_cache_manager
    if _memory_cache_manager is None:
        _memory_cache_manager = MemoryCacheManager()
    return _memory_cache_manager
