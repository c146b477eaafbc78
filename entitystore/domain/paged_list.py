"""Paged result container."""

from collections.abc import Iterator
from dataclasses import dataclass, field


@dataclass
class PagedList[T]:
    """One page of entries plus the totals needed to render pagination."""

    items: list[T] = field(default_factory=list)
    page_index: int = 0
    page_size: int | None = None
    total_count: int = 0

    @property
    def total_pages(self) -> int:
        if self.total_count == 0:
            return 0
        if self.page_size is None:
            return 1
        pages, remainder = divmod(self.total_count, self.page_size)
        return pages + 1 if remainder else pages

    @property
    def has_previous_page(self) -> bool:
        return self.page_index > 0

    @property
    def has_next_page(self) -> bool:
        return self.page_index + 1 < self.total_pages

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)
