"""Generic entity repository."""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import ColumnElement, Select
from sqlmodel import col

from entitystore.domain.base_entity import BaseEntity, supports_soft_delete
from entitystore.domain.events import EntityEventKind, EventBus
from entitystore.domain.exceptions import InvalidArgumentError
from entitystore.domain.paged_list import PagedList
from entitystore.domain.repository import BaseRepository, CacheKeyFactory, QueryShaper
from entitystore.infrastructure.cache.keys import EntityCacheDefaults
from entitystore.infrastructure.cache.manager import StaticCacheManager, ValueCodec
from entitystore.infrastructure.database.data_provider import DataProvider
from entitystore.infrastructure.database.event_aware_repository import (
    EventAwareRepository,
)


class EntityRepository[T: BaseEntity](EventAwareRepository[T], BaseRepository[T]):
    """Cache-aware, soft-delete-aware data access for one entity type.

    Reads accept an optional ``get_cache_key`` function: None bypasses the
    cache, otherwise the function's key is used, or the entity type's default
    key when it returns None. Mutations publish inserted/updated/deleted events
    unless ``publish_event`` is False.

    ``insert_many`` runs in its own transaction scope. ``update_many`` and the
    soft-delete branch of ``delete_many`` persist entities one at a time, so a
    failure part way leaves the earlier entities written.
    """

    def __init__(
        self,
        entity_type: type[T],
        data_provider: DataProvider,
        cache_manager: StaticCacheManager,
        event_publisher: EventBus,
    ):
        super().__init__(event_publisher)
        self.entity_type = entity_type
        self.data_provider = data_provider
        self.cache_manager = cache_manager
        self.cache_defaults = EntityCacheDefaults(entity_type)
        self._table: Select[tuple[T]] | None = None

        self._entity_codec: ValueCodec[T] = ValueCodec(
            dump=lambda entity: entity.model_dump(mode="json"),
            load=entity_type.model_validate,
        )
        self._list_codec: ValueCodec[list[T]] = ValueCodec(
            dump=lambda entities: [entity.model_dump(mode="json") for entity in entities],
            load=lambda rows: [entity_type.model_validate(row) for row in rows],
        )

    @property
    def table(self) -> Select[tuple[T]]:
        """Base query over the entity table."""
        if self._table is None:
            self._table = self.data_provider.get_table(self.entity_type)
        return self._table

    @property
    def supports_soft_delete(self) -> bool:
        return supports_soft_delete(self.entity_type)

    def _without_deleted(self, query: Select[tuple[T]], include_deleted: bool) -> Select[tuple[T]]:
        if include_deleted or not self.supports_soft_delete:
            return query
        return query.where(col(self.entity_type.deleted).is_(False))

    # ============ Reads ============

    async def get_by_id(
        self,
        entity_id: int | None,
        get_cache_key: CacheKeyFactory | None = None,
    ) -> T | None:
        if not entity_id:
            return None

        async def get_entity() -> T | None:
            query = self.table.where(col(self.entity_type.id) == int(entity_id))
            return await self.data_provider.first_or_default(query)

        if get_cache_key is None:
            return await get_entity()

        cache_key = get_cache_key(self.cache_manager) or (
            self.cache_manager.prepare_key_for_default_cache(
                self.cache_defaults.by_id_cache_key, entity_id
            )
        )
        return await self.cache_manager.get(cache_key, get_entity, self._entity_codec)

    async def get_by_ids(
        self,
        ids: Sequence[int] | None,
        get_cache_key: CacheKeyFactory | None = None,
        include_deleted: bool = False,
    ) -> list[T]:
        if not ids:
            return []

        async def get_entities() -> list[T]:
            query = self._without_deleted(self.table, include_deleted)
            entries = await self.data_provider.to_list(
                query.where(col(self.entity_type.id).in_(list(ids)))
            )

            by_id = {entry.id: entry for entry in entries}
            return [by_id[entity_id] for entity_id in ids if entity_id in by_id]

        if get_cache_key is None:
            return await get_entities()

        cache_key = get_cache_key(self.cache_manager) or (
            self.cache_manager.prepare_key_for_default_cache(
                self.cache_defaults.by_ids_cache_key, list(ids), include_deleted
            )
        )
        return await self.cache_manager.get(cache_key, get_entities, self._list_codec)

    async def get_all(
        self,
        func: QueryShaper | None = None,
        get_cache_key: CacheKeyFactory | None = None,
        include_deleted: bool = False,
    ) -> list[T]:
        """Get all entities.

        The default cache key ignores ``func``; callers caching a narrowed
        query must supply their own key.
        """

        async def get_entities() -> list[T]:
            query = self._without_deleted(self.table, include_deleted)
            if func is not None:
                query = func(query)
            return await self.data_provider.to_list(query)

        if get_cache_key is None:
            return await get_entities()

        cache_key = get_cache_key(self.cache_manager) or (
            self.cache_manager.prepare_key_for_default_cache(
                self.cache_defaults.all_cache_key, include_deleted
            )
        )
        return await self.cache_manager.get(cache_key, get_entities, self._list_codec)

    async def get_all_paged(
        self,
        func: QueryShaper | None = None,
        page_index: int = 0,
        page_size: int | None = None,
        get_only_total_count: bool = False,
        include_deleted: bool = False,
    ) -> PagedList[T]:
        query = self._without_deleted(self.table, include_deleted)
        if func is not None:
            query = func(query)

        return await self.data_provider.to_paged_list(
            query, page_index, page_size, get_only_total_count
        )

    async def load_original_copy(self, entity: T) -> T | None:
        if entity is None:
            raise InvalidArgumentError("entity")

        return await self.data_provider.load_row_copy(self.entity_type, entity.id)

    async def entity_from_sql(self, procedure_name: str, /, **parameters: Any) -> list[T]:
        return await self.data_provider.query_proc(
            self.entity_type, procedure_name, parameters
        )

    # ============ Inserts ============

    async def insert(self, entity: T, publish_event: bool = True) -> None:
        if entity is None:
            raise InvalidArgumentError("entity")

        await self.data_provider.insert_entity(entity)

        if publish_event:
            await self._publish_entity_event(EntityEventKind.INSERTED, entity)

    async def insert_many(self, entities: Sequence[T], publish_event: bool = True) -> None:
        if entities is None:
            raise InvalidArgumentError("entities")

        async with self.data_provider.transaction():
            await self.data_provider.bulk_insert_entities(entities)

        if not publish_event:
            return

        for entity in entities:
            await self._publish_entity_event(EntityEventKind.INSERTED, entity)

    # ============ Updates ============

    async def update(self, entity: T, publish_event: bool = True) -> None:
        if entity is None:
            raise InvalidArgumentError("entity")

        await self.data_provider.update_entity(entity)

        if publish_event:
            await self._publish_entity_event(EntityEventKind.UPDATED, entity)

    async def update_many(self, entities: Sequence[T], publish_event: bool = True) -> None:
        if entities is None:
            raise InvalidArgumentError("entities")

        for entity in entities:
            await self.update(entity, publish_event)

    # ============ Deletes ============

    async def delete(self, entity: T, publish_event: bool = True) -> None:
        if entity is None:
            raise InvalidArgumentError("entity")

        if supports_soft_delete(entity):
            entity.mark_as_deleted()
            await self.data_provider.update_entity(entity)
        else:
            await self.data_provider.delete_entity(entity)

        if publish_event:
            await self._publish_entity_event(EntityEventKind.DELETED, entity)

    async def delete_many(self, entities: Sequence[T], publish_event: bool = True) -> None:
        """Delete entities.

        When any entity supports soft delete, only the soft-deletable ones are
        flagged and persisted one by one; the rest are left as they are.
        Otherwise all entities are removed with a single bulk delete.
        """
        if entities is None:
            raise InvalidArgumentError("entities")

        if any(supports_soft_delete(entity) for entity in entities):
            for entity in entities:
                if supports_soft_delete(entity):
                    entity.mark_as_deleted()
                    await self.data_provider.update_entity(entity)
        else:
            await self.data_provider.bulk_delete_entities(self.entity_type, entities)

        if not publish_event:
            return

        for entity in entities:
            await self._publish_entity_event(EntityEventKind.DELETED, entity)

    async def delete_where(self, predicate: ColumnElement[bool]) -> int:
        """Physically delete matching rows.

        Soft delete is not applied and no events are published.
        """
        if predicate is None:
            raise InvalidArgumentError("predicate")

        return await self.data_provider.bulk_delete_where(self.entity_type, predicate)

    async def truncate(self, reset_identity: bool = False) -> None:
        await self.data_provider.truncate(self.entity_type, reset_identity)
