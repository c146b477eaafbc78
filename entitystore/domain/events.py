"""Entity events and the in-process event bus.

Repositories publish one event per inserted, updated or deleted entity after
the change reaches the store. Subscribers (cache invalidation, audit log)
observe them; a failing subscriber is logged and never fails the mutation.
"""

import inspect
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, TypeVar, cast
from uuid import uuid4

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field


class DomainEvent(BaseModel, ABC):
    """Base class for all domain events."""

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(frozen=True)

    @property
    def event_type(self) -> str:
        return self.__class__.__name__


class EntityEventKind(StrEnum):
    INSERTED = "inserted"
    UPDATED = "updated"
    DELETED = "deleted"


class EntityEvent(DomainEvent):
    """An entity mutation; carries the entity instance that was persisted."""

    kind: EntityEventKind
    entity: Any

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def entity_type(self) -> type:
        return type(self.entity)

    @property
    def entity_id(self) -> int | None:
        return getattr(self.entity, "id", None)


class EntityInsertedEvent(EntityEvent):
    kind: EntityEventKind = EntityEventKind.INSERTED


class EntityUpdatedEvent(EntityEvent):
    kind: EntityEventKind = EntityEventKind.UPDATED


class EntityDeletedEvent(EntityEvent):
    kind: EntityEventKind = EntityEventKind.DELETED


ENTITY_EVENT_TYPES: dict[EntityEventKind, type[EntityEvent]] = {
    EntityEventKind.INSERTED: EntityInsertedEvent,
    EntityEventKind.UPDATED: EntityUpdatedEvent,
    EntityEventKind.DELETED: EntityDeletedEvent,
}


def entity_event(kind: EntityEventKind, entity: Any) -> EntityEvent:
    """Build the event matching ``kind`` for the given entity."""
    return ENTITY_EVENT_TYPES[kind](entity=entity)


class DomainEventHandler(ABC):
    @abstractmethod
    async def handle(self, event: DomainEvent) -> None:
        pass


HandlerFunc = Callable[[DomainEvent], Awaitable[None] | None]
THandlerFunc = TypeVar("THandlerFunc", bound=HandlerFunc)


class EventBus:
    """Dispatches events to the handlers subscribed to their exact type."""

    def __init__(self) -> None:
        self._handlers: defaultdict[type[DomainEvent], list[DomainEventHandler]] = (
            defaultdict(list)
        )

    def subscribe(
        self, event_type: type[DomainEvent], handler: DomainEventHandler
    ) -> None:
        self._handlers[event_type].append(handler)
        logger.debug(f"{type(handler).__name__} subscribed to {event_type.__name__}")

    def subscribe_entity_events(self, handler: DomainEventHandler) -> None:
        """Subscribe a handler to the inserted, updated and deleted entity events."""
        for event_type in ENTITY_EVENT_TYPES.values():
            self.subscribe(event_type, handler)

    def unsubscribe(
        self, event_type: type[DomainEvent], handler: DomainEventHandler
    ) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: DomainEvent) -> None:
        for handler in list(self._handlers.get(type(event), [])):
            try:
                await handler.handle(event)
            except Exception:
                logger.exception(
                    f"{type(handler).__name__} failed on {event.event_type} "
                    f"({event.event_id})"
                )

    def clear_handlers(self) -> None:
        self._handlers.clear()

    def get_handlers_count(self, event_type: type[DomainEvent] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())

    def has_handlers(self, event_type: type[DomainEvent]) -> bool:
        return bool(self._handlers.get(event_type))


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the process-wide event bus."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_global_event_bus() -> None:
    global _event_bus
    if _event_bus is not None:
        _event_bus.clear_handlers()
    _event_bus = EventBus()


def subscribe_to_event(
    event_type: type[DomainEvent],
) -> Callable[[THandlerFunc], THandlerFunc]:
    """Register a plain (sync or async) function on the global bus.

    Usage:
        @subscribe_to_event(EntityDeletedEvent)
        async def on_deleted(event: EntityDeletedEvent) -> None:
            ...
    """

    def decorator(handler_func: THandlerFunc) -> THandlerFunc:
        class FunctionHandler(DomainEventHandler):
            async def handle(self, event: DomainEvent) -> None:
                result = handler_func(event)
                if inspect.isawaitable(result):
                    await cast(Awaitable[None], result)

        get_event_bus().subscribe(event_type, FunctionHandler())
        return handler_func

    return decorator
