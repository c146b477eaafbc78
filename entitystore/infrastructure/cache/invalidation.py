"""Drop an entity type's cached results when its entities change."""

from entitystore.domain.events import DomainEvent, DomainEventHandler, EntityEvent, EventBus
from entitystore.infrastructure.cache.keys import EntityCacheDefaults
from entitystore.infrastructure.cache.manager import StaticCacheManager


class EntityCacheInvalidationHandler(DomainEventHandler):
    """Removes the default cache namespace of the changed entity's type.

    Custom keys are only removed when they live under that namespace.
    """

    def __init__(self, cache_manager: StaticCacheManager, namespace: str | None = None):
        self.cache_manager = cache_manager
        self.namespace = namespace

    async def handle(self, event: DomainEvent) -> None:
        if not isinstance(event, EntityEvent):
            return
        defaults = EntityCacheDefaults(event.entity_type, self.namespace)
        await self.cache_manager.remove_by_prefix(defaults.prefix)


def register_entity_cache_invalidation(
    event_bus: EventBus, cache_manager: StaticCacheManager
) -> EntityCacheInvalidationHandler:
    handler = EntityCacheInvalidationHandler(cache_manager)
    event_bus.subscribe_entity_events(handler)
    return handler
