"""Logging configuration with structlog integration.

Two loggers are in use:
1. loguru: general debug and operational logs
2. structlog: structured audit log of entity mutations
"""

import sys
from typing import Any

import structlog
from loguru import logger

from entitystore.config import settings
from entitystore.domain.events import (
    DomainEvent,
    DomainEventHandler,
    EntityEvent,
    EntityEventKind,
    EventBus,
)


def setup_logging() -> None:
    """Configure application logging with structlog and loguru."""
    _configure_structlog()
    _configure_loguru()

    logger.info(f"Logging configured with level: {settings.LOG_LEVEL}")


def _configure_structlog() -> None:
    if settings.ENVIRONMENT == "local":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _get_log_level_number(settings.LOG_LEVEL)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _configure_loguru() -> None:
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    if settings.ENVIRONMENT != "local":
        logger.add(
            "logs/entitystore_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="30 days",
            level="INFO",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )


def _get_log_level_number(level: str) -> int:
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


# ============================================================================
# Entity audit log
# ============================================================================


class EntityEvents:
    """Structured log records for entity mutations.

    Usage:
        from entitystore.infrastructure.logging import EntityEvents

        EntityEvents.entity_inserted(entity_type="News", entity_id=42)
    """

    _log = structlog.get_logger("entity.events")

    @classmethod
    def entity_inserted(cls, entity_type: str, entity_id: int | None, **extra: Any) -> None:
        cls._log.info(
            "entity_inserted",
            event_type="insert",
            entity_type=entity_type,
            entity_id=entity_id,
            **extra,
        )

    @classmethod
    def entity_updated(cls, entity_type: str, entity_id: int | None, **extra: Any) -> None:
        cls._log.info(
            "entity_updated",
            event_type="update",
            entity_type=entity_type,
            entity_id=entity_id,
            **extra,
        )

    @classmethod
    def entity_deleted(
        cls,
        entity_type: str,
        entity_id: int | None,
        soft: bool,
        **extra: Any,
    ) -> None:
        cls._log.info(
            "entity_deleted",
            event_type="delete",
            entity_type=entity_type,
            entity_id=entity_id,
            soft=soft,
            **extra,
        )


class EntityAuditHandler(DomainEventHandler):
    """Writes every entity event to the audit log."""

    async def handle(self, event: DomainEvent) -> None:
        if not isinstance(event, EntityEvent):
            return

        entity_type = event.entity_type.__name__
        match event.kind:
            case EntityEventKind.INSERTED:
                EntityEvents.entity_inserted(entity_type, event.entity_id)
            case EntityEventKind.UPDATED:
                EntityEvents.entity_updated(entity_type, event.entity_id)
            case EntityEventKind.DELETED:
                soft = bool(getattr(event.entity, "deleted", False))
                EntityEvents.entity_deleted(entity_type, event.entity_id, soft=soft)


def register_entity_audit_log(event_bus: EventBus) -> EntityAuditHandler:
    handler = EntityAuditHandler()
    event_bus.subscribe_entity_events(handler)
    return handler
