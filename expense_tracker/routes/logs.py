# expense_tracker/routes/logs.py
from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from expense_tracker.database import get_db
from expense_tracker.models.log import Log
from expense_tracker.schemas.reports import LogPage
from expense_tracker.services.permissions import Actor
from expense_tracker.utils.tokenJWT import require_admin

router = APIRouter(prefix="/api/logs", tags=["Logs"])


@router.get("", response_model=LogPage)
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Filter by action"),
    user_id: Optional[str] = Query(None, description="Filter by user ID"),
    resource: Optional[str] = Query(None, description="Filter by resource"),
    status: Optional[str] = Query(None, description="Filter by status (SUCCESS/PARTIAL/FAIL)"),
    date_from: Optional[date] = Query(None, description="From date (YYYY-MM-DD)"),
    date_to: Optional[date] = Query(None, description="To date (YYYY-MM-DD), inclusive"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    query = db.query(Log)

    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if user_id:
        query = query.filter(Log.user_id == user_id)
    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))
    if status:
        query = query.filter(Log.status == status)
    if date_from:
        query = query.filter(Log.ts >= datetime.combine(date_from, time.min))
    if date_to:
        # Whole end day included
        query = query.filter(Log.ts < datetime.combine(date_to + timedelta(days=1), time.min))

    query = query.order_by(Log.ts.desc(), Log.id.desc())

    total = query.count()
    logs = query.offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": logs,
        "total": total,
        "page": page,
        "page_size": page_size,
    }
