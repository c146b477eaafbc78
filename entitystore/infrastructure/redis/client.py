"""Redis client wrapper.

Provides a single entry point for Redis access:
- lazy connection setup
- ping
- string / JSON cache operations
- prefix scans
"""

from __future__ import annotations

import json
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import redis.asyncio as aioredis
from loguru import logger

if TYPE_CHECKING:
    from redis.asyncio import Redis

from entitystore.config import settings


class RedisClient:
    """Redis client wrapper."""

    def __init__(self, url: str | None = None):
        """Initialise the client.

        Args:
            url: Redis connection URL, defaults to settings.REDIS_URL
        """
        self._url = url or settings.REDIS_URL
        self._client: Redis | None = None

    @property
    def client(self) -> Redis:
        """Redis connection (created on first use)."""
        if self._client is None:
            self._client = aioredis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=10.0,
                socket_connect_timeout=5.0,
                retry_on_timeout=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def ping(self) -> bool:
        """Check the Redis connection.

        Returns:
            True when Redis answers, False otherwise
        """
        try:
            return await self.client.ping()
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    # ============ Cache operations ============

    async def get(self, key: str) -> str | None:
        return await self.client.get(key)

    async def set(
        self,
        key: str,
        value: str,
        ex: int | timedelta | None = None,
        nx: bool = False,
    ) -> bool:
        """Set a string value.

        Args:
            key: key name
            value: value
            ex: expiry in seconds or as a timedelta
            nx: only set when the key does not exist

        Returns:
            True when the value was set
        """
        return await self.client.set(key, value, ex=ex, nx=nx)

    async def delete(self, *keys: str) -> int:
        """Delete one or more keys."""
        if not keys:
            return 0
        return await self.client.delete(*keys)

    # ============ JSON operations ============

    async def get_json(self, key: str) -> Any | None:
        value = await self.get(key)
        if value is None:
            return None
        return json.loads(value)

    async def set_json(
        self,
        key: str,
        value: Any,
        ex: int | timedelta | None = None,
    ) -> bool:
        return await self.set(key, json.dumps(value, ensure_ascii=False), ex=ex)

    # ============ Prefix operations ============

    async def keys_with_prefix(self, prefix: str) -> list[str]:
        """List keys starting with ``prefix`` using SCAN."""
        return [key async for key in self.client.scan_iter(match=f"{prefix}*")]

    async def delete_by_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``."""
        keys = await self.keys_with_prefix(prefix)
        return await self.delete(*keys)


redis_client = RedisClient()


def get_redis_client() -> RedisClient:
    """Redis client dependency."""
    return redis_client
