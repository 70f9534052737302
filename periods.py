from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from config import get_settings
from models import BillingCycle

ALL_CYCLES_ID = "all"


def local_now() -> datetime:
    """Current wall-clock time in the viewer's timezone, as a naive datetime.

    Stored instants are naive local datetimes, so day boundaries computed from
    this value line up with them directly.
    """
    return datetime.now(ZoneInfo(get_settings().timezone)).replace(tzinfo=None)


def local_today() -> date:
    return local_now().date()


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


# inclusive upper bound of a day, millisecond precision
END_OF_DAY = time(23, 59, 59, 999000)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, END_OF_DAY)


def month_start(d: date) -> date:
    return d.replace(day=1)


def add_months(d: date, count: int) -> date:
    month_index = (d.year * 12) + (d.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, 1)


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def months_between(earlier: date, later: date) -> int:
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


@dataclass(frozen=True)
class CycleWindow:
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


def is_all_cycles(cycle: Optional[BillingCycle]) -> bool:
    return cycle is None or str(cycle.id) == ALL_CYCLES_ID


def resolve_cycle_window(
    cycle: Optional[BillingCycle], *, now: Optional[datetime] = None
) -> Optional[CycleWindow]:
    if is_all_cycles(cycle):
        return None
    end = cycle.end_date if cycle.end_date is not None else (now or local_now())
    return CycleWindow(start=cycle.start_date, end=end)


def month_cycle(year: int, month: int) -> BillingCycle:
    first = date(year, month, 1)
    return BillingCycle(
        id=month_key(first),
        start_date=start_of_day(first),
        end_date=start_of_day(add_months(first, 1)),
    )


def previous_cycle(
    cycles: Sequence[BillingCycle], selected: Optional[BillingCycle]
) -> Optional[BillingCycle]:
    """Return the cycle immediately older than ``selected``.

    ``cycles`` must be ordered newest first, the way the cycle listing returns them.
    Calendar-month cycles step back one month instead.
    """
    if is_all_cycles(selected):
        return None
    if isinstance(selected.id, str):
        first = add_months(selected.start_date.date(), -1)
        return month_cycle(first.year, first.month)
    for index, cycle in enumerate(cycles):
        if cycle.id == selected.id:
            if index + 1 < len(cycles):
                return cycles[index + 1]
            return None
    return None


def days_inclusive(start: datetime, end: datetime) -> int:
    return max(1, (end.date() - start.date()).days + 1)


def last_n_days(today: date, days: int) -> list[date]:
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
