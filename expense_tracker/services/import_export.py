# expense_tracker/services/import_export.py
"""
Flat tabular views of expenses for spreadsheet round trips.

``export_rows`` produces one row per expense. ``import_rows`` takes parsed row
mappings (from JSON or a spreadsheet) and inserts what it can: every row is
committed on its own and problems are reported as one message per row. A
failed row never stops the batch, and re-importing a batch duplicates the
rows that went in the first time.
"""
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expense_tracker.config import settings
from expense_tracker.exceptions import ValidationError
from expense_tracker.models.category import Category
from expense_tracker.models.expense import Expense, ExpenseStatus
from expense_tracker.models.users import User
from expense_tracker.services.expenses import UNKNOWN_CATEGORY_NAME
from expense_tracker.services.permissions import Actor
from expense_tracker.utils.money import parse_amount

logger = logging.getLogger(__name__)

# Export headers, in column order
EXPORT_COLUMNS = [
    "ID",
    "User ID",
    "User Name",
    "User Email",
    "Submitted By ID",
    "Submitted By Name",
    "Category ID",
    "Category Name",
    "Description",
    "Amount",
    "Date",
    "Status",
    "Receipt URL",
    "Notes",
    "Created At",
    "Updated At",
]

# Canonical field -> accepted headers. Matching ignores case, spaces,
# underscores and dashes, so "User ID", "userId", "UserID" and "user_id" agree.
FIELD_ALIASES = {
    "user_id": ["User ID", "userId", "User", "Owner ID"],
    "category_id": ["Category ID", "categoryId"],
    "category_name": ["Category Name", "Category", "categoryName"],
    "description": ["Description"],
    "amount": ["Amount"],
    "date": ["Date", "Expense Date"],
    "status": ["Status"],
    "notes": ["Notes", "Note"],
    "submitted_by": ["Submitted By ID", "submittedBy", "Submitted By"],
    "receipt_url": ["Receipt URL", "receiptUrl", "Receipt"],
}

REQUIRED_LABELS = [
    ("user_id", "User ID"),
    ("category", "Category ID"),
    ("description", "Description"),
    ("amount", "Amount"),
]


def _header_key(name) -> str:
    return re.sub(r"[\s_\-]+", "", str(name)).lower()


_ALIAS_LOOKUP = {
    _header_key(alias): canonical
    for canonical, aliases in FIELD_ALIASES.items()
    for alias in aliases + [canonical]
}


@dataclass
class ImportResult:
    imported: int = 0
    errors: List[str] = field(default_factory=list)


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:  # NaN from spreadsheets
        return True
    return isinstance(value, str) and not value.strip()


def _text(value) -> Optional[str]:
    if _is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def normalize_row(row: Mapping) -> dict:
    """Map a loosely-labelled row onto canonical field names."""
    mapped = {}
    for key, value in row.items():
        canonical = _ALIAS_LOOKUP.get(_header_key(key))
        if canonical and not _is_blank(value) and canonical not in mapped:
            mapped[canonical] = value
    return mapped


def parse_date(value) -> date:
    """Date from a date, datetime or string; missing means today."""
    if _is_blank(value):
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = pd.to_datetime(str(value).strip())
    except (ValueError, TypeError, OverflowError):
        raise ValidationError("Invalid date format")
    if pd.isna(parsed):
        raise ValidationError("Invalid date format")
    return parsed.date()


# =========================
# EXPORT
# =========================

def _display_name(user: Optional[User]) -> Optional[str]:
    return user.display_name if user else None


def export_rows(db: Session) -> List[dict]:
    expenses = db.query(Expense).order_by(Expense.date.desc(), Expense.created_at.desc()).all()

    rows = []
    for e in expenses:
        rows.append({
            "ID": e.id,
            "User ID": e.user_id,
            "User Name": _display_name(e.user),
            "User Email": e.user.email if e.user else None,
            "Submitted By ID": e.submitted_by,
            "Submitted By Name": _display_name(e.submitter),
            "Category ID": e.category_id,
            "Category Name": e.category.name if e.category else UNKNOWN_CATEGORY_NAME,
            "Description": e.description,
            "Amount": float(e.amount),
            "Date": e.date.isoformat() if e.date else None,
            "Status": e.status,
            "Receipt URL": e.receipt_url,
            "Notes": e.notes,
            "Created At": e.created_at.isoformat() if e.created_at else None,
            "Updated At": e.updated_at.isoformat() if e.updated_at else None,
        })
    return rows


# =========================
# IMPORT
# =========================

def _resolve_category(db: Session, category_id: Optional[str], category_name: Optional[str]) -> Optional[str]:
    """Category id for the row, creating a named category when needed."""
    if category_id:
        exists = db.query(Category.id).filter(Category.id == category_id).first()
        return category_id if exists else None

    existing = db.query(Category).filter(Category.name == category_name).first()
    if existing:
        return existing.id

    category = Category(
        name=category_name,
        description=f"Auto-created from import: {category_name}",
        color=settings.DEFAULT_CATEGORY_COLOR,
    )
    db.add(category)
    db.flush()
    logger.info("Created category %r (%s) during import", category_name, category.id)
    return category.id


def _import_row(db: Session, index: int, row: Mapping) -> Optional[str]:
    """Insert one row; returns an error message or None on success."""
    data = normalize_row(row)
    description = _text(data.get("description"))
    category_id = _text(data.get("category_id"))
    category_name = _text(data.get("category_name"))

    present = {
        "user_id": _text(data.get("user_id")),
        "category": category_id or category_name,
        "description": description,
        "amount": _text(data.get("amount")),
    }
    missing = [label for key, label in REQUIRED_LABELS if not present[key]]
    if missing:
        row_desc = description or f"Row {index + 1}"
        return f'Skipping expense "{row_desc}": Missing required fields: {", ".join(missing)}'

    try:
        expense_date = parse_date(data.get("date"))
    except ValidationError:
        return f'Skipping expense: Invalid date format for "{description}"'

    try:
        amount = parse_amount(data["amount"])
    except ValidationError as e:
        return f'Skipping expense: Invalid amount for "{description}" ({e.message})'

    status = (_text(data.get("status")) or ExpenseStatus.PENDING.value).lower()
    if status not in {s.value for s in ExpenseStatus}:
        return f'Skipping expense: Invalid status "{status}" for "{description}"'

    user_id = present["user_id"]
    if not db.query(User.id).filter(User.id == user_id).first():
        return f'Skipping expense: User ID "{user_id}" not found for "{description}"'

    resolved_category = _resolve_category(db, category_id, category_name)
    if resolved_category is None:
        return f'Skipping expense: Category ID "{category_id}" not found for "{description}"'

    db.add(Expense(
        user_id=user_id,
        submitted_by=_text(data.get("submitted_by")) or user_id,
        category_id=resolved_category,
        description=description,
        amount=amount,
        date=expense_date,
        status=status,
        receipt_url=_text(data.get("receipt_url")),
        notes=_text(data.get("notes")),
    ))
    db.commit()
    return None


def import_rows(db: Session, actor: Actor, rows) -> ImportResult:
    if not isinstance(rows, (list, tuple)) or not all(isinstance(r, Mapping) for r in rows):
        raise ValidationError("Invalid import data format")

    result = ImportResult()
    for index, row in enumerate(rows):
        # Completely empty rows are skipped silently
        if all(_is_blank(v) for v in row.values()):
            continue
        try:
            error = _import_row(db, index, row)
        except SQLAlchemyError as e:
            db.rollback()
            row_desc = _text(normalize_row(row).get("description")) or f"Row {index + 1}"
            logger.warning("Import row %d failed: %s", index + 1, e)
            error = f'Failed to import expense "{row_desc}": {e.__class__.__name__}'

        if error:
            db.rollback()
            result.errors.append(error)
        else:
            result.imported += 1

    logger.info("Import by %s: %d imported, %d errors", actor.id, result.imported, len(result.errors))
    return result


def purge_expenses(db: Session, actor: Actor) -> int:
    deleted = db.query(Expense).delete(synchronize_session=False)
    db.commit()
    logger.warning("AUDIT: %s %s purged %d expenses", actor.role.value, actor.id, deleted)
    return deleted
