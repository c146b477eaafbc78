"""Cache key naming.

Keys are dotted strings with positional ``{0}`` style placeholders:

    {prefix}.{entity}.byid.{id}
    {prefix}.{entity}.byids.{ids_hash}.{include_deleted}
    {prefix}.{entity}.all.{include_deleted}

Every default key of an entity type shares the ``{prefix}.{entity}.``
namespace, so the whole namespace can be dropped with one prefix removal.
"""

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

from entitystore.config import settings
from entitystore.domain.base_entity import BaseEntity


def ids_hash(ids: Sequence[int]) -> str:
    """Hash an id sequence, keeping its order significant."""
    joined = ",".join(str(entity_id) for entity_id in ids)
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()


def normalize_key_argument(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, BaseEntity):
        return normalize_key_argument(value.id)
    if isinstance(value, set | frozenset):
        return ids_hash(sorted(value))
    if isinstance(value, list | tuple):
        return ids_hash(value)
    return str(value)


@dataclass(frozen=True)
class CacheKey:
    """Cache key template or prepared key.

    cache_time is in minutes; None means the manager default and a value
    <= 0 disables caching for the key.
    """

    key: str
    prefixes: tuple[str, ...] = ()
    cache_time: int | None = None

    def create(self, *args: Any, cache_time: int | None = None) -> "CacheKey":
        """Format the key and its prefixes with the given arguments."""
        normalized = [normalize_key_argument(arg) for arg in args]
        return replace(
            self,
            key=self.key.format(*normalized),
            prefixes=tuple(prefix.format(*normalized) for prefix in self.prefixes),
            cache_time=self.cache_time if cache_time is None else cache_time,
        )


class EntityCacheDefaults:
    """Default cache keys for one entity type."""

    def __init__(self, entity_type: type, namespace: str | None = None):
        self.entity_type = entity_type
        self.entity_type_name = entity_type.__name__.lower()
        self.namespace = namespace or settings.CACHE_KEY_PREFIX

    @property
    def prefix(self) -> str:
        return f"{self.namespace}.{self.entity_type_name}."

    @property
    def by_id_prefix(self) -> str:
        return f"{self.prefix}byid."

    @property
    def by_ids_prefix(self) -> str:
        return f"{self.prefix}byids."

    @property
    def all_prefix(self) -> str:
        return f"{self.prefix}all."

    @property
    def by_id_cache_key(self) -> CacheKey:
        return CacheKey(f"{self.by_id_prefix}{{0}}", (self.by_id_prefix, self.prefix))

    @property
    def by_ids_cache_key(self) -> CacheKey:
        return CacheKey(
            f"{self.by_ids_prefix}{{0}}.{{1}}", (self.by_ids_prefix, self.prefix)
        )

    @property
    def all_cache_key(self) -> CacheKey:
        return CacheKey(f"{self.all_prefix}{{0}}", (self.all_prefix, self.prefix))
