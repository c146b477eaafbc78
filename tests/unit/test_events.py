"""Entity events, cache invalidation and audit log tests."""

import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs

from entitystore.domain.events import (
    DomainEventHandler,
    EntityDeletedEvent,
    EntityEventKind,
    EntityInsertedEvent,
    EntityUpdatedEvent,
    entity_event,
    get_event_bus,
    reset_global_event_bus,
    subscribe_to_event,
)
from entitystore.infrastructure.cache.invalidation import (
    EntityCacheInvalidationHandler,
    register_entity_cache_invalidation,
)
from entitystore.infrastructure.cache.keys import CacheKey
from entitystore.infrastructure.logging import register_entity_audit_log
from tests.models import News, Setting

pytestmark = pytest.mark.anyio


class FailingHandler(DomainEventHandler):
    async def handle(self, event) -> None:
        raise RuntimeError("boom")


# ============================================
# Event types
# ============================================


class TestEntityEvent:
    @pytest.mark.parametrize(
        ("kind", "event_class"),
        [
            (EntityEventKind.INSERTED, EntityInsertedEvent),
            (EntityEventKind.UPDATED, EntityUpdatedEvent),
            (EntityEventKind.DELETED, EntityDeletedEvent),
        ],
    )
    def test_factory(self, kind, event_class) -> None:
        news = News(id=3, title="x")

        event = entity_event(kind, news)

        assert isinstance(event, event_class)
        assert event.kind == kind
        assert event.entity is news
        assert event.entity_type is News
        assert event.entity_id == 3

    def test_event_is_frozen(self) -> None:
        event = entity_event(EntityEventKind.INSERTED, Setting(name="a"))

        with pytest.raises(ValidationError):
            event.kind = EntityEventKind.DELETED


# ============================================
# EventBus
# ============================================


class TestEventBus:
    async def test_subscribe_entity_events(self, event_bus, recorder) -> None:
        assert event_bus.get_handlers_count() == 3
        for kind in EntityEventKind:
            await event_bus.publish(entity_event(kind, Setting(id=1, name="a")))

        assert [event.kind for event in recorder.events] == list(EntityEventKind)

    async def test_failing_handler_does_not_stop_others(
        self, event_bus, recorder
    ) -> None:
        event_bus.subscribe(EntityInsertedEvent, FailingHandler())

        await event_bus.publish(entity_event(EntityEventKind.INSERTED, Setting(name="a")))

        assert len(recorder.events) == 1

    async def test_unsubscribe(self, event_bus, recorder) -> None:
        event_bus.unsubscribe(EntityUpdatedEvent, recorder)

        await event_bus.publish(entity_event(EntityEventKind.UPDATED, Setting(name="a")))

        assert recorder.events == []
        assert event_bus.has_handlers(EntityInsertedEvent)
        assert not event_bus.has_handlers(EntityUpdatedEvent)

    async def test_subscribe_to_event_decorator(self) -> None:
        reset_global_event_bus()
        received = []

        @subscribe_to_event(EntityDeletedEvent)
        def on_deleted(event) -> None:
            received.append(event.entity_id)

        await get_event_bus().publish(
            entity_event(EntityEventKind.DELETED, Setting(id=9, name="a"))
        )

        assert received == [9]
        reset_global_event_bus()


# ============================================
# Cache invalidation
# ============================================


class TestCacheInvalidation:
    async def test_removes_entity_namespace_only(self, cache_manager) -> None:
        handler = EntityCacheInvalidationHandler(cache_manager, namespace="shop")
        await cache_manager.set(CacheKey("shop.news.byid.1"), "news")
        await cache_manager.set(CacheKey("shop.setting.byid.1"), "setting")

        await handler.handle(entity_event(EntityEventKind.UPDATED, News(id=1, title="x")))

        assert "shop.news.byid.1" not in cache_manager
        assert "shop.setting.byid.1" in cache_manager

    async def test_registered_on_bus(self, event_bus, cache_manager) -> None:
        register_entity_cache_invalidation(event_bus, cache_manager)
        await cache_manager.set(CacheKey("entitystore.setting.all.false"), ["a"])

        await event_bus.publish(
            entity_event(EntityEventKind.INSERTED, Setting(id=2, name="b"))
        )

        assert len(cache_manager) == 0


# ============================================
# Audit log
# ============================================


class TestAuditLog:
    async def test_records_each_mutation(self, event_bus) -> None:
        register_entity_audit_log(event_bus)
        setting = Setting(id=4, name="a")

        with capture_logs() as logs:
            await event_bus.publish(entity_event(EntityEventKind.INSERTED, setting))
            await event_bus.publish(entity_event(EntityEventKind.UPDATED, setting))
            await event_bus.publish(entity_event(EntityEventKind.DELETED, setting))

        assert [log["event"] for log in logs] == [
            "entity_inserted",
            "entity_updated",
            "entity_deleted",
        ]
        assert all(log["entity_type"] == "Setting" for log in logs)
        assert all(log["entity_id"] == 4 for log in logs)
        assert logs[2]["soft"] is False

    async def test_soft_delete_flag(self, event_bus) -> None:
        register_entity_audit_log(event_bus)
        news = News(id=1, title="x", deleted=True)

        with capture_logs() as logs:
            await event_bus.publish(entity_event(EntityEventKind.DELETED, news))

        assert logs[0]["soft"] is True
        assert logs[0]["log_level"] == "info"

    async def test_repository_mutations_are_audited(
        self, event_bus, news_repository
    ) -> None:
        register_entity_audit_log(event_bus)

        with capture_logs() as logs:
            news = News(title="Audited")
            await news_repository.insert(news)
            await news_repository.delete(news)

        assert [(log["event"], log["entity_id"]) for log in logs] == [
            ("entity_inserted", news.id),
            ("entity_deleted", news.id),
        ]
        assert logs[1]["soft"] is True
