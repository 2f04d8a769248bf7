# expense_tracker/routes/reports.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from expense_tracker.database import get_db
from expense_tracker.schemas.reports import ExpenseReport
from expense_tracker.services import reporting
from expense_tracker.services.permissions import Actor
from expense_tracker.utils.tokenJWT import require_approver

router = APIRouter(prefix="/api/reports", tags=["Reports"])


def _filter_value(value: Optional[str]) -> Optional[str]:
    if not value or value == "all":
        return None
    return value


# -----------------------------
# Filtered expense report
# -----------------------------
@router.get("/expenses", response_model=ExpenseReport)
def report_expenses(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    status: Optional[str] = Query(None),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_approver),
):
    return reporting.expense_report(
        db,
        start_date=start_date,
        end_date=end_date,
        status=_filter_value(status),
        category_id=_filter_value(category_id),
        user_id=_filter_value(user_id),
    )
