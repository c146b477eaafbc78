"""Redis-backed cache manager."""

from typing import Any

from entitystore.config import settings
from entitystore.infrastructure.cache.manager import StaticCacheManager, ValueCodec
from entitystore.infrastructure.redis.client import RedisClient


class RedisCacheManager(StaticCacheManager):
    """Cache shared between processes through Redis.

    Values are stored as JSON. Entities are not JSON-compatible by themselves,
    so callers caching them pass a ValueCodec.
    """

    def __init__(
        self,
        client: RedisClient,
        default_cache_time: int | None = None,
        short_term_cache_time: int | None = None,
        namespace: str | None = None,
    ):
        super().__init__(default_cache_time, short_term_cache_time)
        self.client = client
        self.namespace = namespace or settings.CACHE_KEY_PREFIX

    async def clear(self) -> None:
        await self.client.delete_by_prefix(f"{self.namespace}.")

    async def _try_get(
        self, key: str, codec: ValueCodec[Any] | None
    ) -> tuple[bool, Any]:
        data = await self.client.get_json(key)
        if data is None:
            return False, None
        return True, codec.load(data) if codec else data

    async def _store(
        self, key: str, value: Any, cache_time: int, codec: ValueCodec[Any] | None
    ) -> None:
        data = codec.dump(value) if codec else value
        await self.client.set_json(key, data, ex=cache_time * 60)

    async def _remove(self, key: str) -> None:
        await self.client.delete(key)

    async def _remove_by_prefix(self, prefix: str) -> int:
        return await self.client.delete_by_prefix(prefix)
