from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from filters import TransactionFilters
from models import (
    BillingCycle,
    Category,
    PaymentMethod,
    PaymentMethodKind,
    SavingsFund,
    Transaction,
    TransactionType,
    User,
)
from services import BillingCycleService, DashboardService, TransactionService


def _seed(session: Session) -> dict[str, object]:
    owner = User(email="owner@example.com", display_name="Owner")
    other = User(email="other@example.com")
    session.add_all([owner, other])
    session.flush()

    food = Category(user_id=owner.id, name="Food")
    salary = Category(user_id=owner.id, name="Salary")
    foreign = Category(user_id=other.id, name="Food")
    session.add_all([food, salary, foreign])
    session.flush()

    december = BillingCycle(
        user_id=owner.id,
        start_date=datetime(2023, 12, 1),
        end_date=datetime(2024, 1, 1),
    )
    january = BillingCycle(
        user_id=owner.id,
        start_date=datetime(2024, 1, 1),
        end_date=datetime(2024, 2, 1),
    )
    february = BillingCycle(user_id=owner.id, start_date=datetime(2024, 2, 1))
    session.add_all([december, january, february])

    session.add_all(
        [
            Transaction(
                user_id=owner.id,
                type=TransactionType.income,
                amount_cents=300_00,
                occurred_at=datetime(2023, 12, 5),
                description="Salary December",
                category_id=salary.id,
            ),
            Transaction(
                user_id=owner.id,
                type=TransactionType.expense,
                amount_cents=100,
                occurred_at=datetime(2024, 1, 5),
                description="Café con leche",
                category_id=food.id,
            ),
            Transaction(
                user_id=owner.id,
                type=TransactionType.income,
                amount_cents=500,
                occurred_at=datetime(2024, 1, 10),
                description="Salary January",
                category_id=salary.id,
            ),
            Transaction(
                user_id=owner.id,
                type=TransactionType.expense,
                amount_cents=50,
                occurred_at=datetime(2024, 2, 1),
                description="Supermercado",
                category_id=food.id,
            ),
            Transaction(
                user_id=other.id,
                type=TransactionType.expense,
                amount_cents=9_999,
                occurred_at=datetime(2024, 1, 6),
                description="Not mine",
                category_id=foreign.id,
            ),
        ]
    )
    session.add_all(
        [
            SavingsFund(
                user_id=owner.id,
                name="Trip",
                current_amount_cents=100,
                target_amount_cents=0,
            ),
            SavingsFund(
                user_id=owner.id,
                name="Bike",
                current_amount_cents=150,
                target_amount_cents=300,
            ),
        ]
    )
    session.commit()
    return {"owner": owner, "january": january, "february": february, "food": food}


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def test_transactions_are_scoped_to_owner() -> None:
    with _session() as session:
        seeded = _seed(session)
        items = TransactionService(session, seeded["owner"].id).list_all()
        assert len(items) == 4
        assert all(t.user_id == seeded["owner"].id for t in items)


def test_cycles_resolve_newest_first() -> None:
    with _session() as session:
        seeded = _seed(session)
        service = BillingCycleService(session, seeded["owner"].id)
        assert [c.start_date.month for c in service.list_all()] == [2, 1, 12]
        assert service.resolve(None).id == seeded["february"].id
        assert service.resolve("all") is None
        assert service.resolve(str(seeded["january"].id)).id == seeded["january"].id
        with pytest.raises(ValueError):
            service.resolve("9999")
        with pytest.raises(ValueError):
            service.resolve("latest")


def test_cycle_param_can_name_a_calendar_month() -> None:
    with _session() as session:
        seeded = _seed(session)
        service = BillingCycleService(session, seeded["owner"].id)
        january = service.resolve("2024-01")
        assert january.id == "2024-01"
        assert (january.start_date, january.end_date) == (
            datetime(2024, 1, 1),
            datetime(2024, 2, 1),
        )
        with pytest.raises(ValueError):
            service.resolve("2024-13")


def test_cycle_of_another_user_is_not_found() -> None:
    with _session() as session:
        seeded = _seed(session)
        stranger = User(email="stranger@example.com")
        session.add(stranger)
        session.commit()
        with pytest.raises(ValueError):
            BillingCycleService(session, stranger.id).get(seeded["january"].id)


def test_transactions_page_applies_cycle_and_filters() -> None:
    with _session() as session:
        seeded = _seed(session)
        service = DashboardService(session, seeded["owner"].id)

        page = service.transactions_page(
            TransactionFilters(), seeded["january"], page=1, items_per_page=10
        )
        assert [t.description for t in page.items] == ["Salary January", "Café con leche"]

        page = service.transactions_page(
            TransactionFilters(search_term="cafe"), None, page=1, items_per_page=10
        )
        assert [t.description for t in page.items] == ["Café con leche"]

        page = service.transactions_page(
            TransactionFilters(), None, page=7, items_per_page=3
        )
        assert page.current_page == 2
        assert page.total_pages == 2
        assert [t.description for t in page.items] == ["Salary December"]


def test_dashboard_for_closed_cycle() -> None:
    with _session() as session:
        seeded = _seed(session)
        data = DashboardService(session, seeded["owner"].id).dashboard(
            seeded["january"], now=datetime(2024, 3, 1, 9, 0)
        )
        assert data.cycle_id == seeded["january"].id
        assert (data.totals.total_income, data.totals.total_expenses) == (500, 100)
        assert data.totals.balance == 400
        assert data.insights.is_historic
        assert data.insights.previous_cycle_income == 300_00
        assert [(p.name, p.current, p.previous) for p in data.income_expense_trend] == [
            ("income", 500, 300_00),
            ("expense", 100, 0),
        ]
        assert [(c.name, c.amount_cents) for c in data.category_breakdown] == [
            ("Food", 100)
        ]
        assert [f.name for f in data.savings_progress] == ["Bike"]
        assert data.daily_comparison is None
        assert len(data.daily_expenses) == 7


def test_dashboard_for_all_cycles_has_no_previous() -> None:
    with _session() as session:
        seeded = _seed(session)
        data = DashboardService(session, seeded["owner"].id).dashboard(
            None, now=datetime(2024, 3, 1, 9, 0)
        )
        assert data.cycle_id is None
        assert data.totals.total_income == 300_00 + 500
        assert data.totals.total_expenses == 150
        assert data.insights.previous_cycle_income == 0
        assert not data.insights.is_historic


def test_dashboard_for_calendar_month_compares_with_prior_month() -> None:
    with _session() as session:
        seeded = _seed(session)
        service = DashboardService(session, seeded["owner"].id)
        data = service.dashboard(
            service.cycles.resolve("2024-01"), now=datetime(2024, 3, 1, 9, 0)
        )
        assert data.cycle_id == "2024-01"
        assert data.totals.balance == 400
        assert data.insights.previous_cycle_income == 300_00


def test_dashboard_leaves_savings_linked_rows_out_of_every_cycle_figure() -> None:
    with _session() as session:
        seeded = _seed(session)
        owner_id = seeded["owner"].id
        fund = SavingsFund(user_id=owner_id, name="Holiday", target_amount_cents=1_000)
        session.add(fund)
        session.flush()
        transfers = [(TransactionType.income, 300), (TransactionType.expense, 200)]
        for txn_type, amount in transfers:
            session.add(
                Transaction(
                    user_id=owner_id,
                    type=txn_type,
                    amount_cents=amount,
                    occurred_at=datetime(2024, 1, 20),
                    description="Holiday transfer",
                    category_id=seeded["food"].id,
                    savings_fund_id=fund.id,
                )
            )
        session.commit()

        data = DashboardService(session, owner_id).dashboard(
            seeded["january"], now=datetime(2024, 3, 1, 9, 0)
        )
        assert data.totals.total_income == data.insights.total_income == 500
        assert data.totals.total_expenses == data.insights.total_expenses == 100
        assert data.income_expense_trend[0].current == data.totals.total_income
        assert [(c.name, c.amount_cents, c.percent) for c in data.category_breakdown] == [
            ("Food", 100, 100.0)
        ]


def test_daily_figures_stay_inside_a_closed_cycle() -> None:
    with _session() as session:
        seeded = _seed(session)
        owner_id = seeded["owner"].id
        session.add(
            Transaction(
                user_id=owner_id,
                type=TransactionType.expense,
                amount_cents=500,
                occurred_at=datetime(2024, 3, 1, 8, 0),
                description="Breakfast",
                category_id=seeded["food"].id,
            )
        )
        session.commit()
        service = DashboardService(session, owner_id)
        now = datetime(2024, 3, 1, 9, 0)

        closed = service.dashboard(seeded["january"], now=now)
        assert closed.daily_comparison is None
        assert all(d.amount_cents == 0 for d in closed.daily_expenses)

        everything = service.dashboard(None, now=now)
        assert everything.daily_comparison.today_cents == 500
        assert everything.daily_expenses[-1].amount_cents == 500


def test_card_summaries_only_list_cards_with_unpaid_charges() -> None:
    with _session() as session:
        seeded = _seed(session)
        owner_id = seeded["owner"].id
        visa = PaymentMethod(
            user_id=owner_id, name="Visa", bank="Acme", kind=PaymentMethodKind.credit_card
        )
        amex = PaymentMethod(
            user_id=owner_id, name="Amex", kind=PaymentMethodKind.credit_card
        )
        session.add_all([visa, amex])
        session.flush()
        charges = [(120, visa, False), (80, visa, False), (60, amex, True)]
        for amount, method, is_paid in charges:
            session.add(
                Transaction(
                    user_id=owner_id,
                    type=TransactionType.expense,
                    amount_cents=amount,
                    occurred_at=datetime(2024, 2, 10),
                    description="Card charge",
                    category_id=seeded["food"].id,
                    payment_method_id=method.id,
                    is_card_payment=True,
                    is_paid=is_paid,
                )
            )
        session.commit()

        rows = DashboardService(session, owner_id).card_summaries(
            now=datetime(2024, 3, 1)
        )
        assert [(r.card_name, r.total_amount_cents) for r in rows] == [("Visa", 200)]
        assert len(rows[0].transaction_ids) == 2
