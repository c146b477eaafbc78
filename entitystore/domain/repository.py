"""Base repository interface."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy import ColumnElement, Select

from entitystore.domain.paged_list import PagedList

if TYPE_CHECKING:
    from entitystore.infrastructure.cache.keys import CacheKey
    from entitystore.infrastructure.cache.manager import StaticCacheManager

QueryShaper = Callable[[Select], Select]
CacheKeyFactory = Callable[["StaticCacheManager"], "CacheKey | None"]


class BaseRepository[T](ABC):
    """Generic data access contract for one entity type.

    ``get_cache_key`` arguments follow one rule everywhere: pass None to skip
    the cache, pass a function to cache the result. The function receives the
    cache manager and returns a key, or None to fall back to the default key.
    """

    @abstractmethod
    async def get_by_id(
        self,
        entity_id: int | None,
        get_cache_key: CacheKeyFactory | None = None,
    ) -> T | None:
        """Get the entity with the given identifier."""
        pass

    @abstractmethod
    async def get_by_ids(
        self,
        ids: Sequence[int] | None,
        get_cache_key: CacheKeyFactory | None = None,
        include_deleted: bool = False,
    ) -> list[T]:
        """Get entities by identifiers, in the order of ``ids``."""
        pass

    @abstractmethod
    async def get_all(
        self,
        func: QueryShaper | None = None,
        get_cache_key: CacheKeyFactory | None = None,
        include_deleted: bool = False,
    ) -> list[T]:
        """Get all entities, optionally shaped by ``func``."""
        pass

    @abstractmethod
    async def get_all_paged(
        self,
        func: QueryShaper | None = None,
        page_index: int = 0,
        page_size: int | None = None,
        get_only_total_count: bool = False,
        include_deleted: bool = False,
    ) -> PagedList[T]:
        """Get one page of entities."""
        pass

    @abstractmethod
    async def insert(self, entity: T, publish_event: bool = True) -> None:
        """Insert the entity."""
        pass

    @abstractmethod
    async def insert_many(self, entities: Sequence[T], publish_event: bool = True) -> None:
        """Insert entities as one unit of work."""
        pass

    @abstractmethod
    async def update(self, entity: T, publish_event: bool = True) -> None:
        """Update the entity."""
        pass

    @abstractmethod
    async def update_many(self, entities: Sequence[T], publish_event: bool = True) -> None:
        """Update entities one by one."""
        pass

    @abstractmethod
    async def delete(self, entity: T, publish_event: bool = True) -> None:
        """Delete the entity (soft delete when supported)."""
        pass

    @abstractmethod
    async def delete_many(self, entities: Sequence[T], publish_event: bool = True) -> None:
        """Delete entities (soft delete when supported)."""
        pass

    @abstractmethod
    async def delete_where(self, predicate: ColumnElement[bool]) -> int:
        """Physically delete rows matching the predicate."""
        pass

    @abstractmethod
    async def load_original_copy(self, entity: T) -> T | None:
        """Load a fresh copy of the entity as currently stored."""
        pass

    @abstractmethod
    async def entity_from_sql(self, procedure_name: str, /, **parameters: Any) -> list[T]:
        """Run a stored procedure and map its rows to entities."""
        pass

    @abstractmethod
    async def truncate(self, reset_identity: bool = False) -> None:
        """Remove every row of the entity table."""
        pass
