from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from models import TransactionType


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: TransactionType
    amount_cents: int
    occurred_at: datetime
    description: str
    category_id: int
    payment_method_id: Optional[int] = None
    installments: Optional[int] = None
    savings_fund_id: Optional[int] = None


class PageMeta(BaseModel):
    current_page: int
    total_pages: int
    items_per_page: int
    total_items: int
    has_next: bool
    has_previous: bool


class TransactionPageOut(BaseModel):
    items: list[TransactionOut]
    page: PageMeta
    filters_active: bool


class BillingCycleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    start_date: datetime
    end_date: Optional[datetime] = None


class UserOut(BaseModel):
    id: int
    email: str
    display_name: Optional[str] = None
    telegram_linked: bool
