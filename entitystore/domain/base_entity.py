"""Base entity classes for all persisted entities."""

from typing import Any

from sqlmodel import Field, SQLModel


class BaseEntity(SQLModel):
    """Base class for entities with a store-assigned integer identifier.

    Concrete entities subclass it with ``table=True``.
    """

    id: int | None = Field(default=None, primary_key=True)


class SoftDeletedEntity(SQLModel):
    """Soft-delete capability.

    Entities mixing this in are flagged as deleted instead of being removed,
    and listing operations skip flagged rows.
    """

    deleted: bool = Field(default=False, nullable=False)

    def mark_as_deleted(self) -> None:
        """Flag the entity as logically removed."""
        self.deleted = True


def supports_soft_delete(entity_or_type: Any) -> bool:
    """Return True if the entity (or entity type) has the soft-delete capability."""
    if isinstance(entity_or_type, type):
        return issubclass(entity_or_type, SoftDeletedEntity)
    return isinstance(entity_or_type, SoftDeletedEntity)
