import pytest

from pagination import Pagination, paginate


def test_total_pages_and_clamping_scenario() -> None:
    cursor = Pagination(total_items=25, items_per_page=10)
    assert cursor.total_pages == 3

    assert cursor.go_to_page(5) == 3
    assert (cursor.start_index, cursor.end_index) == (20, 30)

    cursor.set_items_per_page(5)
    assert cursor.current_page == 1
    assert cursor.total_pages == 5


def test_empty_list_has_one_page() -> None:
    cursor = Pagination(total_items=0, items_per_page=10)
    assert cursor.total_pages == 1
    assert cursor.next_page() == 1
    assert cursor.previous_page() == 1
    assert cursor.page_slice([]) == []


def test_next_and_previous_are_clamped() -> None:
    cursor = Pagination(total_items=12, items_per_page=5)
    assert cursor.next_page() == 2
    assert cursor.next_page() == 3
    assert cursor.next_page() == 3
    assert cursor.previous_page() == 2
    assert cursor.go_to_page(-4) == 1
    assert cursor.previous_page() == 1


def test_shrinking_list_resets_out_of_range_page() -> None:
    cursor = Pagination(total_items=50, items_per_page=10, current_page=5)
    cursor.set_total_items(45)
    assert cursor.current_page == 5

    cursor.set_total_items(12)
    assert cursor.current_page == 1
    assert cursor.total_pages == 2


def test_set_items_per_page_always_restarts() -> None:
    cursor = Pagination(total_items=100, items_per_page=10, current_page=4)
    cursor.set_items_per_page(20)
    assert cursor.current_page == 1


def test_invalid_page_size_is_rejected() -> None:
    with pytest.raises(ValueError):
        Pagination(total_items=3, items_per_page=0)
    with pytest.raises(ValueError):
        Pagination(total_items=3).set_items_per_page(0)


@pytest.mark.parametrize("size, per_page", [(0, 3), (1, 3), (9, 3), (10, 3), (25, 10)])
def test_pages_cover_every_item_exactly_once(size: int, per_page: int) -> None:
    items = list(range(size))
    first = paginate(items, 1, per_page)
    collected = []
    for page in range(1, first.total_pages + 1):
        chunk = paginate(items, page, per_page)
        assert len(chunk.items) <= per_page
        collected.extend(chunk.items)
    assert collected == items


def test_paginate_clamps_requested_page() -> None:
    page = paginate(list(range(25)), 9, 10)
    assert page.current_page == 3
    assert page.items == [20, 21, 22, 23, 24]
    assert page.has_previous and not page.has_next
