"""Event-aware repository base class."""

from entitystore.domain.base_entity import BaseEntity
from entitystore.domain.events import EntityEventKind, EventBus, entity_event


class EventAwareRepository[T: BaseEntity]:
    """Repository base class that publishes entity events after persistence operations."""

    def __init__(self, event_publisher: EventBus):
        self._event_publisher = event_publisher

    async def _publish_entity_event(self, kind: EntityEventKind, entity: T) -> None:
        await self._event_publisher.publish(entity_event(kind, entity))
