from __future__ import annotations

import unicodedata
from dataclasses import dataclass, replace
from datetime import date
from typing import FrozenSet, Iterable, Literal, Optional, Union

from models import SAVINGS_TYPES, Transaction, TransactionType
from periods import CycleWindow, end_of_day, start_of_day

TypeSelection = Literal["all", "income", "expense", "savings"]
CategorySelection = Union[Literal["all"], FrozenSet[int]]

TYPE_SELECTIONS: tuple[str, ...] = ("all", "income", "expense", "savings")


@dataclass(frozen=True)
class DateRange:
    date_from: Optional[date] = None
    date_to: Optional[date] = None


@dataclass(frozen=True)
class TransactionFilters:
    search_term: str = ""
    selected_type: TypeSelection = "all"
    selected_category: CategorySelection = "all"
    date_range: Optional[DateRange] = None

    @property
    def is_any_filter_active(self) -> bool:
        return (
            self.search_term != ""
            or self.selected_type != "all"
            or (
                self.selected_category != "all" and len(self.selected_category) > 0
            )
            or (self.date_range is not None and self.date_range.date_from is not None)
        )


def parse_type_selection(value: Optional[str]) -> TypeSelection:
    if not value:
        return "all"
    if value not in TYPE_SELECTIONS:
        raise ValueError(f"Unknown transaction type filter: {value}")
    return value  # type: ignore[return-value]


def parse_category_selection(values: Optional[Iterable]) -> CategorySelection:
    if values is None or values == "all":
        return "all"
    if isinstance(values, (str, int)):
        values = [values]
    return frozenset(int(v) for v in values)


class FilterState:
    """Per-view filter selection.

    Each update swaps a single field of the current snapshot, so edits to
    different fields never overwrite each other.
    """

    def __init__(self, filters: Optional[TransactionFilters] = None) -> None:
        self.filters = filters or TransactionFilters()

    def update_search_term(self, search_term: str) -> TransactionFilters:
        self.filters = replace(self.filters, search_term=search_term)
        return self.filters

    def update_selected_type(self, selected_type: str) -> TransactionFilters:
        self.filters = replace(
            self.filters, selected_type=parse_type_selection(selected_type)
        )
        return self.filters

    def update_selected_category(
        self, selected_category: Union[str, int, Iterable[int]]
    ) -> TransactionFilters:
        self.filters = replace(
            self.filters,
            selected_category=parse_category_selection(selected_category),
        )
        return self.filters

    def update_date_range(self, date_range: Optional[DateRange]) -> TransactionFilters:
        self.filters = replace(self.filters, date_range=date_range)
        return self.filters

    def clear(self) -> TransactionFilters:
        self.filters = TransactionFilters()
        return self.filters

    @property
    def is_any_filter_active(self) -> bool:
        return self.filters.is_any_filter_active


def normalize_text(value: Optional[str]) -> str:
    decomposed = unicodedata.normalize("NFKD", value or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def _matches_type(txn: Transaction, selected_type: str) -> bool:
    if selected_type == "all":
        return True
    if selected_type == "savings":
        return txn.type in SAVINGS_TYPES
    return txn.type == TransactionType(selected_type)


def _matches_category(txn: Transaction, selected: CategorySelection) -> bool:
    # An empty explicit selection matches nothing; it does not mean "all".
    if selected == "all":
        return True
    return txn.category_id in selected


def _matches_date_range(txn: Transaction, date_range: Optional[DateRange]) -> bool:
    if date_range is None:
        return True
    if date_range.date_from is not None:
        if txn.occurred_at < start_of_day(date_range.date_from):
            return False
    if date_range.date_to is not None:
        if txn.occurred_at > end_of_day(date_range.date_to):
            return False
    return True


def filter_transactions(
    transactions: Iterable[Transaction],
    filters: TransactionFilters,
    window: Optional[CycleWindow] = None,
) -> list[Transaction]:
    """Apply ``filters`` (and an optional cycle window) and sort newest first.

    The sort is stable, so transactions sharing an instant keep their input order.
    """
    needle = normalize_text(filters.search_term)
    matched = [
        txn
        for txn in transactions
        if needle in normalize_text(txn.description)
        and _matches_type(txn, filters.selected_type)
        and _matches_category(txn, filters.selected_category)
        and _matches_date_range(txn, filters.date_range)
        and (window is None or window.contains(txn.occurred_at))
    ]
    return sorted(matched, key=lambda txn: txn.occurred_at, reverse=True)
