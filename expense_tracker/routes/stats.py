# expense_tracker/routes/stats.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from expense_tracker.database import get_db
from expense_tracker.schemas.reports import CategoryTotal, DailyTotal, ExpenseStats, MonthlyTotal, QuarterlyTotal
from expense_tracker.services import reporting
from expense_tracker.services.permissions import Actor
from expense_tracker.utils.tokenJWT import get_current_actor

# Shares the /api/expenses prefix; must be included before the expenses router
# so these paths are not captured by /{expense_id}
router = APIRouter(prefix="/api/expenses", tags=["Stats"])


def _scope(actor: Actor) -> Optional[str]:
    return None if actor.is_reviewer else actor.id


# === Dashboard cards ===

@router.get("/stats", response_model=ExpenseStats)
def get_stats(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Organisation-wide for approvers and admins, own expenses otherwise."""
    return reporting.expense_stats(db, owner_id=_scope(actor))


@router.get("/my-stats", response_model=ExpenseStats)
def get_my_stats(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return reporting.expense_stats(db, owner_id=actor.id)


# === Charts ===

@router.get("/analytics/categories", response_model=List[CategoryTotal])
def get_category_breakdown(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return reporting.expenses_by_category(db, owner_id=actor.id)


@router.get("/analytics/monthly", response_model=List[MonthlyTotal])
def get_monthly_totals(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return reporting.monthly_totals(db, owner_id=actor.id)


@router.get("/analytics/period/{period}", response_model=List[CategoryTotal])
def get_period_breakdown(
    period: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return reporting.period_breakdown(db, period, owner_id=actor.id)


@router.get("/analytics/daily", response_model=List[DailyTotal])
def get_daily_totals(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    today = date.today()
    return reporting.daily_totals(
        db,
        year if year is not None else today.year,
        month if month is not None else today.month,
        owner_id=actor.id,
    )


@router.get("/analytics/quarterly", response_model=List[QuarterlyTotal])
def get_quarterly_totals(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return reporting.quarterly_totals(db, year or date.today().year, owner_id=actor.id)
