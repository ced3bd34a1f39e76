"""Page-number arithmetic for long result lists."""

from dataclasses import dataclass, field
from math import ceil

MAX_PAGE_LINKS = 7


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next: bool
    has_previous: bool
    page_numbers: list[int] = field(default_factory=list)

    @property
    def next_page(self) -> int | None:
        return self.current_page + 1 if self.has_next else None

    @property
    def previous_page(self) -> int | None:
        return self.current_page - 1 if self.has_previous else None

    @property
    def offset(self) -> int:
        """Index of the first item on the current page."""
        return (self.current_page - 1) * self.items_per_page


def page_window(current_page: int, total_pages: int) -> list[int]:
    """Up to seven consecutive page numbers around the current page."""
    if total_pages <= MAX_PAGE_LINKS:
        return list(range(1, total_pages + 1))
    if current_page <= 4:
        return list(range(1, MAX_PAGE_LINKS + 1))
    if total_pages - current_page < 3:
        return list(range(total_pages - 6, total_pages + 1))
    return list(range(current_page - 3, current_page + 4))


def paginate(current_page: int, total_items: int, items_per_page: int) -> Pagination:
    """Compute the pagination block for one page of a result list.

    Raises ValueError for a page below 1, a negative total or a
    non-positive page size.
    """
    if current_page < 1:
        raise ValueError("current_page must be at least 1")
    if total_items < 0:
        raise ValueError("total_items must not be negative")
    if items_per_page <= 0:
        raise ValueError("items_per_page must be positive")

    total_pages = ceil(total_items / items_per_page)

    return Pagination(
        current_page=current_page,
        total_pages=total_pages,
        total_items=total_items,
        items_per_page=items_per_page,
        has_next=current_page < total_pages,
        has_previous=current_page > 1,
        page_numbers=page_window(current_page, total_pages),
    )
