import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_ITEMS_PER_PAGE = 10


def total_pages_for(total_items: int, items_per_page: int) -> int:
    return max(1, math.ceil(total_items / items_per_page))


def clamp_page(page: int, total_pages: int) -> int:
    return max(1, min(page, total_pages))


class Pagination:
    """Page cursor over a list of ``total_items`` entries.

    ``current_page`` always stays within ``[1, total_pages]``. Changing the page
    size starts over at page 1, and shrinking the list below the current page
    does the same.
    """

    def __init__(
        self,
        total_items: int,
        items_per_page: int = DEFAULT_ITEMS_PER_PAGE,
        current_page: int = 1,
    ) -> None:
        if items_per_page < 1:
            raise ValueError("items_per_page must be at least 1")
        self.total_items = max(0, total_items)
        self.items_per_page = items_per_page
        self.current_page = clamp_page(current_page, self.total_pages)

    @property
    def total_pages(self) -> int:
        return total_pages_for(self.total_items, self.items_per_page)

    @property
    def start_index(self) -> int:
        return (self.current_page - 1) * self.items_per_page

    @property
    def end_index(self) -> int:
        return self.start_index + self.items_per_page

    def _revalidate(self) -> None:
        if self.current_page > self.total_pages:
            self.current_page = 1

    def set_total_items(self, total_items: int) -> None:
        self.total_items = max(0, total_items)
        self._revalidate()

    def next_page(self) -> int:
        self.current_page = min(self.current_page + 1, self.total_pages)
        return self.current_page

    def previous_page(self) -> int:
        self.current_page = max(self.current_page - 1, 1)
        return self.current_page

    def go_to_page(self, page: int) -> int:
        self.current_page = clamp_page(page, self.total_pages)
        return self.current_page

    def set_items_per_page(self, items_per_page: int) -> None:
        if items_per_page < 1:
            raise ValueError("items_per_page must be at least 1")
        self.items_per_page = items_per_page
        self.current_page = 1

    def page_slice(self, items: Sequence[T]) -> Sequence[T]:
        return items[self.start_index : self.end_index]


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    current_page: int
    total_pages: int
    items_per_page: int
    total_items: int

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1


def paginate(
    items: Sequence[T], page: int = 1, items_per_page: int = DEFAULT_ITEMS_PER_PAGE
) -> Page[T]:
    cursor = Pagination(len(items), items_per_page, page)
    return Page(
        items=list(cursor.page_slice(items)),
        current_page=cursor.current_page,
        total_pages=cursor.total_pages,
        items_per_page=cursor.items_per_page,
        total_items=cursor.total_items,
    )
