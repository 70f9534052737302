"""Chart-ready aggregates derived from already filtered transaction lists.

Every function here is pure: it reads the sequences it is given and returns new
frozen dataclasses. Empty inputs produce zero-valued results, never errors.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

from models import (
    BillingCycle,
    Category,
    PaymentMethod,
    PaymentMethodKind,
    SavingsFund,
    Transaction,
    TransactionType,
)
from periods import (
    add_months,
    days_inclusive,
    end_of_day,
    is_all_cycles,
    last_n_days,
    local_now,
    local_today,
    month_key,
    month_start,
    months_between,
    start_of_day,
)

INSTALLMENT_PATTERN = re.compile(r"^(.*) \((\d+)/(\d+)\)$")


@dataclass(frozen=True)
class Totals:
    total_income: int
    total_expenses: int
    balance: int


@dataclass(frozen=True)
class DailyExpenseComparison:
    today_cents: int
    yesterday_cents: int


@dataclass(frozen=True)
class DailyExpense:
    day: date
    amount_cents: int
    is_today: bool


@dataclass(frozen=True)
class TrendPoint:
    name: str
    current: float
    previous: float


@dataclass(frozen=True)
class CategoryTotal:
    category_id: int
    name: str
    icon: Optional[str]
    amount_cents: int
    percent: float


@dataclass(frozen=True)
class FundProgress:
    fund_id: int
    name: str
    current_amount_cents: int
    target_amount_cents: int
    target_date: Optional[date]
    progress: float
    is_completed: bool


@dataclass(frozen=True)
class ProjectionPoint:
    month: str
    due_cents: int
    remaining_cents: int


@dataclass(frozen=True)
class MonthlyTotal:
    month: str
    total_cents: int


@dataclass(frozen=True)
class BudgetInsights:
    total_income: int
    total_expenses: int
    balance: int
    previous_cycle_income: int = 0
    previous_cycle_expenses: int = 0
    is_historic: bool = False
    daily_budget: float = 0.0
    weekly_budget: float = 0.0
    cycle_daily_average: float = 0.0
    cycle_weekly_average: float = 0.0
    weekly_expenses_total: int = 0
    daily_average_7_days: float = 0.0


@dataclass(frozen=True)
class ParsedInstallment:
    base_description: str
    current: int
    total: int


@dataclass(frozen=True)
class ScheduledInstallment:
    number: int
    due_month: date
    amount_cents: int


@dataclass(frozen=True)
class InstallmentDetail:
    transaction_id: int
    description: str
    total_amount_cents: int
    installment_amount_cents: int
    current_installment: int
    total_installments: int
    pending_amount_cents: int
    payment_method_name: str
    purchase_date: date
    last_installment_month: date


@dataclass(frozen=True)
class CardSummary:
    payment_method_id: int
    card_name: str
    card_bank: Optional[str]
    total_amount_cents: int
    transaction_ids: list[int]


@dataclass(frozen=True)
class InstallmentSummary:
    pending: list[InstallmentDetail]
    completed: list[InstallmentDetail]
    total_pending_cents: int
    total_for_current_month_cents: int


def _sum_type(transactions: Iterable[Transaction], txn_type: TransactionType) -> int:
    return sum(t.amount_cents for t in transactions if t.type == txn_type)


def compute_totals(transactions: Iterable[Transaction]) -> Totals:
    items = list(transactions)
    income = _sum_type(items, TransactionType.income)
    expenses = _sum_type(items, TransactionType.expense)
    return Totals(total_income=income, total_expenses=expenses, balance=income - expenses)


def _expenses_by_day(transactions: Iterable[Transaction]) -> dict[date, int]:
    totals: dict[date, int] = {}
    for txn in transactions:
        if txn.type != TransactionType.expense:
            continue
        day = txn.occurred_at.date()
        totals[day] = totals.get(day, 0) + txn.amount_cents
    return totals


def daily_expense_comparison(
    transactions: Iterable[Transaction], *, today: Optional[date] = None
) -> Optional[DailyExpenseComparison]:
    """Expense totals for today and yesterday, or ``None`` when both are zero."""
    today = today or local_today()
    by_day = _expenses_by_day(transactions)
    today_total = by_day.get(today, 0)
    yesterday_total = by_day.get(today - timedelta(days=1), 0)
    if today_total == 0 and yesterday_total == 0:
        return None
    return DailyExpenseComparison(
        today_cents=today_total, yesterday_cents=yesterday_total
    )


def daily_expense_series(
    transactions: Iterable[Transaction],
    *,
    today: Optional[date] = None,
    days: int = 7,
) -> list[DailyExpense]:
    today = today or local_today()
    by_day = _expenses_by_day(transactions)
    return [
        DailyExpense(day=day, amount_cents=by_day.get(day, 0), is_today=day == today)
        for day in last_n_days(today, days)
    ]


def without_savings_links(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Drop income/expense rows tied to a savings fund; they are internal transfers."""
    return [t for t in transactions if t.savings_fund_id is None]


def _cash_flow(transactions: Iterable[Transaction]) -> tuple[int, int]:
    own = without_savings_links(transactions)
    return _sum_type(own, TransactionType.income), _sum_type(own, TransactionType.expense)


def budget_insights(
    transactions: Sequence[Transaction],
    cycle: Optional[BillingCycle],
    *,
    previous_transactions: Optional[Sequence[Transaction]] = None,
    recent_transactions: Optional[Sequence[Transaction]] = None,
    now: Optional[datetime] = None,
) -> BudgetInsights:
    now = now or local_now()
    income, expenses = _cash_flow(transactions)
    balance = income - expenses

    is_historic = False
    daily_budget = weekly_budget = 0.0
    cycle_daily_average = cycle_weekly_average = 0.0
    if not is_all_cycles(cycle):
        if cycle.end_date is not None and cycle.end_date < now:
            is_historic = True
            duration = days_inclusive(cycle.start_date, cycle.end_date)
            cycle_daily_average = expenses / duration if expenses > 0 else 0.0
            cycle_weekly_average = cycle_daily_average * 7
        else:
            month_end = end_of_day(add_months(now.date(), 1) - timedelta(days=1))
            days_left = max(1, (month_end - now).days)
            if balance > 0:
                daily_budget = balance / days_left
                weekly_budget = daily_budget * 7

    previous_income = previous_expenses = 0
    if previous_transactions is not None:
        previous_income, previous_expenses = _cash_flow(previous_transactions)

    week_start = start_of_day(now.date() - timedelta(days=6))
    week_end = end_of_day(now.date())
    recent = transactions if recent_transactions is None else recent_transactions
    weekly_total = sum(
        t.amount_cents
        for t in recent
        if t.type == TransactionType.expense
        and t.savings_fund_id is None
        and week_start <= t.occurred_at <= week_end
    )

    return BudgetInsights(
        total_income=income,
        total_expenses=expenses,
        balance=balance,
        previous_cycle_income=previous_income,
        previous_cycle_expenses=previous_expenses,
        is_historic=is_historic,
        daily_budget=daily_budget,
        weekly_budget=weekly_budget,
        cycle_daily_average=cycle_daily_average,
        cycle_weekly_average=cycle_weekly_average,
        weekly_expenses_total=weekly_total,
        daily_average_7_days=weekly_total / 7 if weekly_total > 0 else 0.0,
    )


def income_expense_trend(insights: Optional[BudgetInsights]) -> list[TrendPoint]:
    if insights is None:
        return [TrendPoint("income", 0, 0), TrendPoint("expense", 0, 0)]
    return [
        TrendPoint("income", insights.total_income, insights.previous_cycle_income),
        TrendPoint(
            "expense", insights.total_expenses, insights.previous_cycle_expenses
        ),
    ]


def category_breakdown(
    transactions: Iterable[Transaction], categories: Iterable[Category]
) -> list[CategoryTotal]:
    lookup = {c.id: c for c in categories}
    sums: dict[int, int] = {}
    for txn in transactions:
        if txn.type != TransactionType.expense:
            continue
        sums[txn.category_id] = sums.get(txn.category_id, 0) + txn.amount_cents

    total = sum(sums.values())
    rows = []
    for category_id, amount in sums.items():
        category = lookup.get(category_id)
        rows.append(
            CategoryTotal(
                category_id=category_id,
                # deleted categories keep showing up under their raw id
                name=category.name if category else str(category_id),
                icon=category.icon if category else None,
                amount_cents=amount,
                percent=(amount / total * 100) if total else 0.0,
            )
        )
    rows.sort(key=lambda r: r.amount_cents, reverse=True)
    return rows


def savings_fund_progress(funds: Iterable[SavingsFund]) -> list[FundProgress]:
    rows = []
    for fund in funds:
        target = fund.target_amount_cents or 0
        if target <= 0:
            continue
        current = fund.current_amount_cents or 0
        rows.append(
            FundProgress(
                fund_id=fund.id,
                name=fund.name,
                current_amount_cents=current,
                target_amount_cents=target,
                target_date=fund.target_date,
                progress=min(100.0, current / target * 100),
                is_completed=current >= target,
            )
        )
    rows.sort(key=lambda r: r.progress, reverse=True)
    return rows


def parse_installment_description(description: str) -> Optional[ParsedInstallment]:
    match = INSTALLMENT_PATTERN.match(description or "")
    if not match:
        return None
    return ParsedInstallment(
        base_description=match.group(1).strip(),
        current=int(match.group(2)),
        total=int(match.group(3)),
    )


def format_installment_description(base: str, current: int, total: int) -> str:
    return f"{base} ({current}/{total})"


def installment_schedule(txn: Transaction) -> list[ScheduledInstallment]:
    info = txn.installment_info
    if info is None:
        return []
    first = month_start(info.purchase_date)
    return [
        ScheduledInstallment(
            number=number,
            due_month=add_months(first, number - 1),
            amount_cents=info.amount_per_period_cents,
        )
        for number in range(1, info.total + 1)
    ]


def _installment_purchases(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [
        t
        for t in transactions
        if t.type == TransactionType.expense and t.installment_info is not None
    ]


def installment_projection(
    transactions: Iterable[Transaction],
    *,
    today: Optional[date] = None,
    periods: int = 6,
) -> list[ProjectionPoint]:
    """Monthly outlook for installment purchases that still have payments left.

    ``remaining_cents`` is the balance still owed at the start of each month,
    that month's payment included.
    """
    current = month_start(today or local_today())
    active = []
    for txn in _installment_purchases(transactions):
        info = txn.installment_info
        if months_between(info.purchase_date, current) < info.total:
            active.append(info)

    points = []
    for offset in range(periods):
        period = add_months(current, offset)
        due = remaining = 0
        for info in active:
            number = months_between(info.purchase_date, period) + 1
            if 1 <= number <= info.total:
                due += info.amount_per_period_cents
                remaining += (info.total - number + 1) * info.amount_per_period_cents
        points.append(
            ProjectionPoint(month=month_key(period), due_cents=due, remaining_cents=remaining)
        )
    return points


def monthly_installment_totals(
    transactions: Iterable[Transaction],
    *,
    today: Optional[date] = None,
    months_back: int = 6,
    months_forward: int = 5,
) -> list[MonthlyTotal]:
    current = month_start(today or local_today())
    totals: dict[str, int] = {}
    for txn in _installment_purchases(transactions):
        for scheduled in installment_schedule(txn):
            key = month_key(scheduled.due_month)
            totals[key] = totals.get(key, 0) + scheduled.amount_cents
    return [
        MonthlyTotal(month=key, total_cents=totals.get(key, 0))
        for key in (
            month_key(add_months(current, offset))
            for offset in range(-months_back, months_forward + 1)
        )
    ]


def installment_details(
    transactions: Iterable[Transaction],
    payment_methods: Iterable[PaymentMethod],
    *,
    today: Optional[date] = None,
) -> InstallmentSummary:
    current = month_start(today or local_today())
    method_names = {pm.id: pm.label for pm in payment_methods}

    pending: list[InstallmentDetail] = []
    completed: list[InstallmentDetail] = []
    total_pending = 0
    total_this_month = 0
    for txn in _installment_purchases(transactions):
        schedule = installment_schedule(txn)
        open_items = [s for s in schedule if s.due_month >= current]
        parsed = parse_installment_description(txn.description)
        detail_pending = sum(s.amount_cents for s in open_items)
        detail = InstallmentDetail(
            transaction_id=txn.id,
            description=parsed.base_description if parsed else txn.description,
            total_amount_cents=sum(s.amount_cents for s in schedule),
            installment_amount_cents=schedule[0].amount_cents,
            current_installment=min(
                len(schedule) - len(open_items) + 1, len(schedule)
            ),
            total_installments=len(schedule),
            pending_amount_cents=detail_pending,
            payment_method_name=method_names.get(txn.payment_method_id, "Unknown"),
            purchase_date=txn.occurred_at.date(),
            last_installment_month=schedule[-1].due_month,
        )
        if open_items:
            pending.append(detail)
            total_pending += detail_pending
            total_this_month += sum(
                s.amount_cents for s in open_items if s.due_month == current
            )
        else:
            completed.append(detail)

    pending.sort(key=lambda d: d.pending_amount_cents, reverse=True)
    completed.sort(key=lambda d: d.last_installment_month, reverse=True)
    return InstallmentSummary(
        pending=pending,
        completed=completed,
        total_pending_cents=total_pending,
        total_for_current_month_cents=total_this_month,
    )


def card_summaries(
    transactions: Iterable[Transaction],
    payment_methods: Iterable[PaymentMethod],
    *,
    now: Optional[datetime] = None,
) -> list[CardSummary]:
    """Outstanding credit-card charges per card, oldest charge first.

    Charges dated after ``now`` are not due yet. Cards with nothing unpaid are
    left out.
    """
    now = now or local_now()
    unpaid = sorted(
        (
            t
            for t in transactions
            if t.is_card_payment and not t.is_paid and t.occurred_at <= now
        ),
        key=lambda t: t.occurred_at,
    )
    summaries = []
    for card in payment_methods:
        if card.kind != PaymentMethodKind.credit_card:
            continue
        charges = [t for t in unpaid if t.payment_method_id == card.id]
        if not charges:
            continue
        summaries.append(
            CardSummary(
                payment_method_id=card.id,
                card_name=card.name,
                card_bank=card.bank,
                total_amount_cents=sum(t.amount_cents for t in charges),
                transaction_ids=[t.id for t in charges],
            )
        )
    return summaries
