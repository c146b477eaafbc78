"""Generic async entity repository with read-through caching and soft delete."""

from entitystore.domain.base_entity import (
    BaseEntity,
    SoftDeletedEntity,
    supports_soft_delete,
)
from entitystore.domain.events import (
    EntityDeletedEvent,
    EntityEventKind,
    EntityInsertedEvent,
    EntityUpdatedEvent,
    EventBus,
)
from entitystore.domain.exceptions import (
    DomainException,
    InvalidArgumentError,
    UnsupportedOperationError,
)
from entitystore.domain.paged_list import PagedList
from entitystore.domain.repository import BaseRepository
from entitystore.infrastructure.cache import (
    CacheKey,
    EntityCacheDefaults,
    MemoryCacheManager,
    StaticCacheManager,
)
from entitystore.infrastructure.database.data_provider import DataProvider
from entitystore.infrastructure.database.entity_repository import EntityRepository

__all__ = [
    "BaseEntity",
    "BaseRepository",
    "CacheKey",
    "DataProvider",
    "DomainException",
    "EntityCacheDefaults",
    "EntityDeletedEvent",
    "EntityEventKind",
    "EntityInsertedEvent",
    "EntityRepository",
    "EntityUpdatedEvent",
    "EventBus",
    "InvalidArgumentError",
    "MemoryCacheManager",
    "PagedList",
    "SoftDeletedEntity",
    "StaticCacheManager",
    "UnsupportedOperationError",
    "supports_soft_delete",
]
