from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"
    deposit = "deposit"
    withdrawal = "withdrawal"


SAVINGS_TYPES = frozenset({TransactionType.deposit, TransactionType.withdrawal})


class PaymentMethodKind(str, Enum):
    cash = "cash"
    credit_card = "credit_card"
    debit_card = "debit_card"
    bank_transfer = "bank_transfer"
    virtual_wallet = "virtual_wallet"
    other = "other"


@dataclass(frozen=True)
class InstallmentInfo:
    total: int
    amount_per_period_cents: int
    purchase_date: date


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(120))
    telegram_chat_id: Mapped[Optional[str]] = mapped_column(String(64))

    @property
    def is_telegram_linked(self) -> bool:
        return bool(self.telegram_chat_id)


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String(50))
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction", back_populates="category"
    )


class PaymentMethod(Base, TimestampMixin):
    __tablename__ = "payment_methods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[PaymentMethodKind] = mapped_column(
        SAEnum(PaymentMethodKind), default=PaymentMethodKind.other, nullable=False
    )
    bank: Mapped[Optional[str]] = mapped_column(String(100))
    icon: Mapped[Optional[str]] = mapped_column(String(50))
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def label(self) -> str:
        if self.bank:
            return f"{self.name} ({self.bank})"
        return self.name


class BillingCycle(Base, TimestampMixin):
    __tablename__ = "billing_cycles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (Index("ix_billing_cycles_user_start", "user_id", "start_date"),)


class SavingsFund(Base, TimestampMixin):
    __tablename__ = "savings_funds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    current_amount_cents: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    target_amount_cents: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    target_date: Mapped[Optional[date]] = mapped_column(Date)


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id"), nullable=False
    )
    payment_method_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("payment_methods.id")
    )
    installments: Mapped[Optional[int]] = mapped_column(Integer)
    installment_amount_cents: Mapped[Optional[int]] = mapped_column(Integer)
    savings_fund_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("savings_funds.id")
    )
    # charged to a credit card and settled later by a card payment
    is_card_payment: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    is_paid: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    category: Mapped["Category"] = relationship(
        "Category", back_populates="transactions"
    )
    payment_method: Mapped[Optional["PaymentMethod"]] = relationship("PaymentMethod")

    __table_args__ = (
        Index("ix_transactions_user_occurred", "user_id", "occurred_at"),
        Index("ix_transactions_user_type_occurred", "user_id", "type", "occurred_at"),
        Index(
            "ix_transactions_user_unpaid_card", "user_id", "is_card_payment", "is_paid"
        ),
        CheckConstraint("amount_cents >= 0", name="amount_positive"),
    )

    @property
    def installment_info(self) -> Optional[InstallmentInfo]:
        if not self.installments or self.installments < 2:
            return None
        per_period = self.installment_amount_cents
        if per_period is None:
            per_period = self.amount_cents // self.installments
        return InstallmentInfo(
            total=self.installments,
            amount_per_period_cents=per_period,
            purchase_date=self.occurred_at.date(),
        )
