"""Read-through cache for repository results."""

from entitystore.infrastructure.cache.invalidation import (
    EntityCacheInvalidationHandler,
    register_entity_cache_invalidation,
)
from entitystore.infrastructure.cache.keys import CacheKey, EntityCacheDefaults
from entitystore.infrastructure.cache.manager import (
    MemoryCacheManager,
    StaticCacheManager,
    ValueCodec,
    get_cache_manager,
)

__all__ = [
    "CacheKey",
    "EntityCacheDefaults",
    "EntityCacheInvalidationHandler",
    "MemoryCacheManager",
    "StaticCacheManager",
    "ValueCodec",
    "get_cache_manager",
    "register_entity_cache_invalidation",
]
