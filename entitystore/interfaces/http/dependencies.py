"""FastAPI dependency providers.

Repositories are request scoped: each request gets its own session, data
provider and repository instances, while the cache manager and event bus are
shared.

Usage:
    NewsRepository = Annotated[
        EntityRepository[News], Depends(repository_provider(News))
    ]

    @router.get("/news/{news_id}")
    async def get_news(news_id: int, repository: NewsRepository) -> News | None:
        return await repository.get_by_id(news_id)
"""

from collections.abc import Awaitable, Callable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from entitystore.domain.base_entity import BaseEntity
from entitystore.domain.events import EventBus, get_event_bus
from entitystore.infrastructure.cache.manager import StaticCacheManager, get_cache_manager
from entitystore.infrastructure.database.data_provider import DataProvider
from entitystore.infrastructure.database.entity_repository import EntityRepository
from entitystore.infrastructure.database.session import get_db_session


def get_data_provider(session: AsyncSession = Depends(get_db_session)) -> DataProvider:
    return DataProvider(session)


def repository_provider[T: BaseEntity](
    entity_type: type[T],
) -> Callable[..., Awaitable[EntityRepository[T]]]:
    """Build a dependency that yields an EntityRepository for ``entity_type``."""

    async def get_repository(
        data_provider: DataProvider = Depends(get_data_provider),
        cache_manager: StaticCacheManager = Depends(get_cache_manager),
        event_bus: EventBus = Depends(get_event_bus),
    ) -> EntityRepository[T]:
        return EntityRepository(entity_type, data_provider, cache_manager, event_bus)

    get_repository.__name__ = f"get_{entity_type.__name__.lower()}_repository"
    return get_repository
