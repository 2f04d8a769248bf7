# expense_tracker/services/reporting.py
"""
Read-only aggregations over expenses for dashboards, reports and exports.

Rows are fetched with a plain outer join and folded in Python, so month,
quarter and day labels come out the same on SQLite and PostgreSQL. The
folding helpers take any iterable of mappings and are usable on their own.
"""
import calendar
from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from expense_tracker.exceptions import ValidationError
from expense_tracker.models.category import Category
from expense_tracker.models.expense import Expense, ExpenseStatus
from expense_tracker.models.users import User
from expense_tracker.services.expenses import UNKNOWN_CATEGORY_NAME, expense_details, query_expenses

UNKNOWN_CATEGORY_ID = "unknown"
MONTHS_SHOWN = 12
PERIODS = ("day", "month", "quarter")


def _money(value) -> float:
    return float(value or 0)


def quarter_of(d: date) -> int:
    return (d.month - 1) // 3 + 1


def period_start(period: str, today: date) -> date:
    if period == "day":
        return today
    if period == "month":
        return today.replace(day=1)
    if period == "quarter":
        return date(today.year, (quarter_of(today) - 1) * 3 + 1, 1)
    raise ValidationError("Invalid period. Must be 'day', 'month', or 'quarter'")


# -----------------------------
# Pure folds
# -----------------------------

def aggregate_by_category(rows: Iterable[Mapping]) -> List[dict]:
    """
    Total and count per category, largest total first.

    Rows whose category could not be resolved (no name) share a single
    "Unknown Category" bucket.
    """
    buckets = OrderedDict()
    for row in rows:
        name = row.get("category_name")
        if name:
            key = row.get("category_id")
            color = row.get("category_color")
        else:
            key, name, color = UNKNOWN_CATEGORY_ID, UNKNOWN_CATEGORY_NAME, None

        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = {
                "category_id": key,
                "category_name": name,
                "category_color": color,
                "total_amount": Decimal("0"),
                "expense_count": 0,
            }
        bucket["total_amount"] += Decimal(str(row.get("amount") or 0))
        bucket["expense_count"] += 1

    items = sorted(buckets.values(), key=lambda b: b["total_amount"], reverse=True)
    for item in items:
        item["total_amount"] = _money(item["total_amount"])
    return items


def _group_by_label(rows: Iterable[Mapping], label) -> "OrderedDict[str, dict]":
    groups = OrderedDict()
    for row in rows:
        key = label(row["date"])
        group = groups.setdefault(key, {"total_amount": Decimal("0"), "expense_count": 0})
        group["total_amount"] += Decimal(str(row.get("amount") or 0))
        group["expense_count"] += 1
    return groups


def aggregate_by_month(rows: Iterable[Mapping], limit: int = MONTHS_SHOWN) -> List[dict]:
    groups = _group_by_label(rows, lambda d: f"{d:%Y-%m}")
    months = sorted(groups, reverse=True)[:limit]
    return [
        {"month": m, "total_amount": _money(groups[m]["total_amount"]), "expense_count": groups[m]["expense_count"]}
        for m in months
    ]


def aggregate_by_quarter(rows: Iterable[Mapping], year: int) -> List[dict]:
    groups = _group_by_label(
        (r for r in rows if r["date"].year == year), lambda d: f"Q{quarter_of(d)}"
    )
    result = []
    for q in ("Q1", "Q2", "Q3", "Q4"):
        group = groups.get(q, {"total_amount": 0, "expense_count": 0})
        result.append({"quarter": q, "total_amount": _money(group["total_amount"]), "expense_count": group["expense_count"]})
    return result


def aggregate_by_day(rows: Iterable[Mapping], year: int, month: int) -> List[dict]:
    groups = _group_by_label(
        (r for r in rows if r["date"].year == year and r["date"].month == month),
        lambda d: d.isoformat(),
    )
    days_in_month = calendar.monthrange(year, month)[1]

    # Fill missing days with zero totals
    result = []
    for day in range(1, days_in_month + 1):
        key = date(year, month, day).isoformat()
        group = groups.get(key, {"total_amount": 0, "expense_count": 0})
        result.append({"date": key, "total_amount": _money(group["total_amount"]), "expense_count": group["expense_count"]})
    return result


# -----------------------------
# Queries
# -----------------------------

def _expense_rows(db: Session, owner_id: Optional[str] = None, since: Optional[date] = None,
                  until: Optional[date] = None) -> List[dict]:
    query = (
        db.query(
            Expense.category_id.label("category_id"),
            Category.name.label("category_name"),
            Category.color.label("category_color"),
            Expense.amount.label("amount"),
            Expense.date.label("date"),
            Expense.status.label("status"),
        )
        .outerjoin(Category, Expense.category_id == Category.id)
    )
    if owner_id:
        query = query.filter(Expense.user_id == owner_id)
    if since:
        query = query.filter(Expense.date >= since)
    if until:
        query = query.filter(Expense.date <= until)
    return [dict(row._mapping) for row in query.all()]


def expenses_by_category(db: Session, owner_id: Optional[str] = None, since: Optional[date] = None) -> List[dict]:
    return aggregate_by_category(_expense_rows(db, owner_id=owner_id, since=since))


def monthly_totals(db: Session, owner_id: Optional[str] = None) -> List[dict]:
    return aggregate_by_month(_expense_rows(db, owner_id=owner_id))


def quarterly_totals(db: Session, year: int, owner_id: Optional[str] = None) -> List[dict]:
    rows = _expense_rows(db, owner_id=owner_id, since=date(year, 1, 1), until=date(year, 12, 31))
    return aggregate_by_quarter(rows, year)


def daily_totals(db: Session, year: int, month: int, owner_id: Optional[str] = None) -> List[dict]:
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12")
    last_day = calendar.monthrange(year, month)[1]
    rows = _expense_rows(db, owner_id=owner_id, since=date(year, month, 1), until=date(year, month, last_day))
    return aggregate_by_day(rows, year, month)


def period_breakdown(db: Session, period: str, owner_id: Optional[str] = None,
                     today: Optional[date] = None) -> List[dict]:
    start = period_start(period, today or date.today())
    return expenses_by_category(db, owner_id=owner_id, since=start)


def expense_stats(db: Session, owner_id: Optional[str] = None, today: Optional[date] = None) -> dict:
    today = today or date.today()

    def total(*conditions):
        query = db.query(func.coalesce(func.sum(Expense.amount), 0))
        if owner_id:
            query = query.filter(Expense.user_id == owner_id)
        for condition in conditions:
            query = query.filter(condition)
        return _money(query.scalar())

    return {
        "current_quarter_expenses": total(Expense.date >= period_start("quarter", today)),
        "this_month_expenses": total(Expense.date >= period_start("month", today)),
        "pending_expenses": total(Expense.status == ExpenseStatus.PENDING.value),
        "approved_expenses": total(Expense.status == ExpenseStatus.APPROVED.value),
    }


def expense_report(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    category_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> dict:
    expenses = query_expenses(
        db,
        owner_id=user_id,
        status=status,
        category_id=category_id,
        start_date=start_date,
        end_date=end_date,
        order_by_date=True,
    )
    total_amount = sum((Decimal(str(e.amount)) for e in expenses), Decimal("0"))
    return {
        "expenses": [expense_details(e) for e in expenses],
        "total_amount": _money(total_amount),
        "expense_count": len(expenses),
    }


def database_stats(db: Session, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    week_ago = now - timedelta(days=7)

    status_counts = (
        db.query(Expense.status, func.count(Expense.id))
        .group_by(Expense.status)
        .all()
    )
    activity = (
        db.query(func.date(Expense.created_at).label("d"), func.count(Expense.id).label("n"))
        .filter(Expense.created_at >= week_ago)
        .group_by(func.date(Expense.created_at))
        .order_by(func.date(Expense.created_at).desc())
        .all()
    )

    return {
        "total_expenses": db.query(Expense).count(),
        "total_users": db.query(User).count(),
        "total_categories": db.query(Category).count(),
        "expenses_by_status": [{"status": s, "count": n} for s, n in status_counts],
        "recent_activity": [
            {"date": str(row.d), "action": "expense_created", "count": row.n} for row in activity
        ],
    }
