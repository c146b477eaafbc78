"""Redis client wrapper."""

from entitystore.infrastructure.redis.client import (
    RedisClient,
    get_redis_client,
    redis_client,
)

__all__ = [
    "RedisClient",
    "get_redis_client",
    "redis_client",
]
