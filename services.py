from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from aggregates import (
    BudgetInsights,
    CategoryTotal,
    DailyExpense,
    DailyExpenseComparison,
    FundProgress,
    InstallmentSummary,
    MonthlyTotal,
    ProjectionPoint,
    Totals,
    TrendPoint,
    CardSummary,
    budget_insights,
    card_summaries,
    category_breakdown,
    compute_totals,
    daily_expense_comparison,
    daily_expense_series,
    income_expense_trend,
    installment_details,
    installment_projection,
    monthly_installment_totals,
    savings_fund_progress,
    without_savings_links,
)
from filters import TransactionFilters, filter_transactions
from models import BillingCycle, Category, PaymentMethod, SavingsFund, Transaction
from pagination import Page, paginate
from periods import (
    ALL_CYCLES_ID,
    CycleWindow,
    local_now,
    month_cycle,
    previous_cycle,
    resolve_cycle_window,
)

logger = logging.getLogger(__name__)

MONTH_PARAM = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class CategoryService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self, include_disabled: bool = True) -> list[Category]:
        stmt = select(Category).where(Category.user_id == self.user_id)
        if not include_disabled:
            stmt = stmt.where(Category.is_enabled.is_(True))
        return self.session.scalars(stmt.order_by(Category.name)).all()


class PaymentMethodService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[PaymentMethod]:
        stmt = (
            select(PaymentMethod)
            .where(PaymentMethod.user_id == self.user_id)
            .order_by(PaymentMethod.name)
        )
        return self.session.scalars(stmt).all()


class SavingsFundService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[SavingsFund]:
        stmt = (
            select(SavingsFund)
            .where(SavingsFund.user_id == self.user_id)
            .order_by(SavingsFund.name)
        )
        return self.session.scalars(stmt).all()


class BillingCycleService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[BillingCycle]:
        stmt = (
            select(BillingCycle)
            .where(BillingCycle.user_id == self.user_id)
            .order_by(BillingCycle.start_date.desc(), BillingCycle.id.desc())
        )
        return self.session.scalars(stmt).all()

    def get(self, cycle_id: int) -> BillingCycle:
        cycle = self.session.get(BillingCycle, cycle_id)
        if not cycle or cycle.user_id != self.user_id:
            raise ValueError("Billing cycle not found")
        return cycle

    def current(self) -> Optional[BillingCycle]:
        cycles = self.list_all()
        return cycles[0] if cycles else None

    def resolve(self, cycle_param: Optional[str]) -> Optional[BillingCycle]:
        """Map a ``cycle`` query value to a cycle.

        ``"all"`` means no cycle scoping and resolves to ``None``; a missing value
        selects the most recent cycle and ``YYYY-MM`` selects a calendar month.
        """
        if cycle_param == ALL_CYCLES_ID:
            return None
        if not cycle_param:
            return self.current()
        if MONTH_PARAM.match(cycle_param):
            year, month = (int(part) for part in cycle_param.split("-"))
            return month_cycle(year, month)
        try:
            cycle_id = int(cycle_param)
        except ValueError as exc:
            raise ValueError("Billing cycle not found") from exc
        return self.get(cycle_id)


class TransactionService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[Transaction]:
        stmt = select(Transaction).where(Transaction.user_id == self.user_id)
        items = self.session.scalars(stmt).all()
        logger.debug(f"transactions_loaded: user_id={self.user_id} count={len(items)}")
        return items

    def in_window(self, window: Optional[CycleWindow]) -> list[Transaction]:
        stmt = select(Transaction).where(Transaction.user_id == self.user_id)
        if window is not None:
            stmt = stmt.where(
                Transaction.occurred_at >= window.start,
                Transaction.occurred_at < window.end,
            )
        return self.session.scalars(stmt).all()


@dataclass(frozen=True)
class DashboardData:
    cycle_id: Optional[Union[int, str]]
    totals: Totals
    insights: BudgetInsights
    income_expense_trend: list[TrendPoint]
    daily_comparison: Optional[DailyExpenseComparison]
    daily_expenses: list[DailyExpense]
    category_breakdown: list[CategoryTotal]
    savings_progress: list[FundProgress]
    installment_projection: list[ProjectionPoint]


class DashboardService:
    """Loads one user's snapshot and runs the filter and aggregate functions over it."""

    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id
        self.transactions = TransactionService(session, user_id)
        self.cycles = BillingCycleService(session, user_id)

    def transactions_page(
        self,
        filters: TransactionFilters,
        cycle: Optional[BillingCycle],
        *,
        page: int = 1,
        items_per_page: int = 10,
        now: Optional[datetime] = None,
    ) -> Page[Transaction]:
        window = resolve_cycle_window(cycle, now=now or local_now())
        matched = filter_transactions(self.transactions.list_all(), filters, window)
        return paginate(matched, page, items_per_page)

    def dashboard(
        self, cycle: Optional[BillingCycle], *, now: Optional[datetime] = None
    ) -> DashboardData:
        now = now or local_now()
        everything = self.transactions.list_all()
        window = resolve_cycle_window(cycle, now=now)
        in_cycle = without_savings_links(
            filter_transactions(everything, TransactionFilters(), window)
        )

        previous = previous_cycle(self.cycles.list_all(), cycle)
        previous_items = None
        if previous is not None:
            previous_items = self.transactions.in_window(
                resolve_cycle_window(previous, now=now)
            )

        insights = budget_insights(
            in_cycle,
            cycle,
            previous_transactions=previous_items,
            recent_transactions=everything,
            now=now,
        )
        categories = CategoryService(self.session, self.user_id).list_all()
        funds = SavingsFundService(self.session, self.user_id).list_all()
        logger.debug(
            f"dashboard_built: user_id={self.user_id} "
            f"cycle_id={cycle.id if cycle else ALL_CYCLES_ID} txns={len(in_cycle)}"
        )
        return DashboardData(
            cycle_id=cycle.id if cycle else None,
            totals=compute_totals(in_cycle),
            insights=insights,
            income_expense_trend=income_expense_trend(insights),
            daily_comparison=daily_expense_comparison(in_cycle, today=now.date()),
            daily_expenses=daily_expense_series(in_cycle, today=now.date()),
            category_breakdown=category_breakdown(in_cycle, categories),
            savings_progress=savings_fund_progress(funds),
            installment_projection=installment_projection(
                everything, today=now.date()
            ),
        )

    def installments(
        self, *, now: Optional[datetime] = None
    ) -> tuple[InstallmentSummary, list[MonthlyTotal]]:
        today = (now or local_now()).date()
        everything = self.transactions.list_all()
        methods = PaymentMethodService(self.session, self.user_id).list_all()
        return (
            installment_details(everything, methods, today=today),
            monthly_installment_totals(everything, today=today),
        )

    def card_summaries(self, *, now: Optional[datetime] = None) -> list[CardSummary]:
        stmt = select(Transaction).where(
            Transaction.user_id == self.user_id,
            Transaction.is_card_payment.is_(True),
            Transaction.is_paid.is_(False),
        )
        unpaid = self.session.scalars(stmt).all()
        methods = PaymentMethodService(self.session, self.user_id).list_all()
        logger.debug(
            f"card_summaries_loaded: user_id={self.user_id} unpaid={len(unpaid)}"
        )
        return card_summaries(unpaid, methods, now=now or local_now())

    def savings_progress(self) -> list[FundProgress]:
        return savings_fund_progress(
            SavingsFundService(self.session, self.user_id).list_all()
        )
