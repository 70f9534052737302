import logging
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth import AuthorizationError, get_authenticated_user
from config import get_settings
from database import SessionLocal, init_db
from filters import DateRange, FilterState, TransactionFilters
from models import BillingCycle, User
from schemas import (
    BillingCycleOut,
    PageMeta,
    TransactionOut,
    TransactionPageOut,
    UserOut,
)
from services import BillingCycleService, DashboardService

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Ledger Analytics")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.on_event("startup")
def startup_event():
    if settings.database_url.startswith("sqlite"):
        init_db()


@app.exception_handler(AuthorizationError)
def authorization_error_handler(request: Request, exc: AuthorizationError):
    logger.info(f"auth_failed: path={request.url.path} reason={exc}")
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(SQLAlchemyError)
def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"load_failed: path={request.url.path}")
    return JSONResponse(status_code=503, content={"detail": "Failed to load data"})


def _session_token(request: Request) -> Optional[str]:
    token = request.cookies.get("session")
    if token:
        return token
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return None


def current_user(request: Request, db: Session = Depends(get_db)) -> User:
    return get_authenticated_user(db, _session_token(request))


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def filters_from_request(request: Request) -> TransactionFilters:
    params = request.query_params
    state = FilterState()
    try:
        state.update_search_term(params.get("q", ""))
        state.update_selected_type(params.get("type") or "all")
        raw_categories = params.getlist("category")
        if raw_categories and "all" not in raw_categories:
            # a bare ``category=`` selects the empty set, which matches nothing
            state.update_selected_category([v for v in raw_categories if v])
        date_from = _parse_date(params.get("from"))
        date_to = _parse_date(params.get("to"))
        if date_from or date_to:
            state.update_date_range(DateRange(date_from, date_to))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return state.filters


def cycle_from_request(
    request: Request, db: Session, user: User
) -> Optional[BillingCycle]:
    try:
        return BillingCycleService(db, user.id).resolve(
            request.query_params.get("cycle")
        )
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _int_param(request: Request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {name}") from exc
    if value < 1:
        raise HTTPException(status_code=400, detail=f"Invalid {name}")
    return value


@app.get("/api/me", response_model=UserOut)
def me(user: User = Depends(current_user)):
    return UserOut(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        telegram_linked=user.is_telegram_linked,
    )


@app.get("/api/cycles", response_model=list[BillingCycleOut])
def list_cycles(user: User = Depends(current_user), db: Session = Depends(get_db)):
    return BillingCycleService(db, user.id).list_all()


@app.get("/api/transactions", response_model=TransactionPageOut)
def list_transactions(
    request: Request,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    filters = filters_from_request(request)
    cycle = cycle_from_request(request, db, user)
    page = _int_param(request, "page", 1)
    per_page = _int_param(request, "per_page", settings.items_per_page)
    result = DashboardService(db, user.id).transactions_page(
        filters, cycle, page=page, items_per_page=per_page
    )
    return TransactionPageOut(
        items=[TransactionOut.model_validate(t) for t in result.items],
        page=PageMeta(
            current_page=result.current_page,
            total_pages=result.total_pages,
            items_per_page=result.items_per_page,
            total_items=result.total_items,
            has_next=result.has_next,
            has_previous=result.has_previous,
        ),
        filters_active=filters.is_any_filter_active,
    )


@app.get("/api/dashboard")
def dashboard(
    request: Request,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    cycle = cycle_from_request(request, db, user)
    data = DashboardService(db, user.id).dashboard(cycle)
    return asdict(data)


@app.get("/api/savings-funds/progress")
def savings_progress(user: User = Depends(current_user), db: Session = Depends(get_db)):
    return [asdict(row) for row in DashboardService(db, user.id).savings_progress()]


@app.get("/api/installments")
def installments(user: User = Depends(current_user), db: Session = Depends(get_db)):
    summary, monthly = DashboardService(db, user.id).installments()
    return {
        "summary": asdict(summary),
        "monthly_totals": [asdict(row) for row in monthly],
    }


@app.get("/api/card-summaries")
def card_summaries(user: User = Depends(current_user), db: Session = Depends(get_db)):
    return [asdict(row) for row in DashboardService(db, user.id).card_summaries()]

def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
