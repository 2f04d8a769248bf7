# expense_tracker/services/expenses.py
import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from expense_tracker.config import settings
from expense_tracker.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from expense_tracker.models.category import Category
from expense_tracker.models.expense import Expense, ExpenseStatus
from expense_tracker.models.users import Role, User
from expense_tracker.services.permissions import Actor, require_role
from expense_tracker.utils.money import parse_amount

logger = logging.getLogger(__name__)

UNKNOWN_CATEGORY_NAME = "Unknown Category"

# Fields an expense update may touch; owner and submitter are fixed at creation
UPDATABLE_FIELDS = {"category_id", "description", "amount", "date", "notes", "receipt_url", "status"}


def _now():
    return datetime.now(timezone.utc)


def _clean_description(description) -> str:
    description = (description or "").strip()
    if not description:
        raise ValidationError("Description is required")
    if len(description) > settings.DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Description cannot be longer than {settings.DESCRIPTION_MAX_LENGTH} characters"
        )
    return description


def _require_category(db: Session, category_id: str) -> None:
    if not db.query(Category.id).filter(Category.id == category_id).first():
        raise NotFoundError("Category not found")


def get_expense(db: Session, expense_id: str) -> Expense:
    expense = db.query(Expense).filter(Expense.id == expense_id).first()
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def ensure_can_view(actor: Actor, expense: Expense) -> None:
    if not actor.is_reviewer and expense.user_id != actor.id:
        raise AuthorizationError("You can only view your own expenses")


def ensure_can_edit(actor: Actor, expense: Expense) -> None:
    """Owner while not approved, approver/admin always."""
    if actor.is_reviewer:
        return
    if expense.user_id != actor.id:
        raise AuthorizationError("You can only edit your own expenses")
    if expense.status == ExpenseStatus.APPROVED.value:
        raise InvalidStateError("Cannot edit approved expenses")


# =========================
# RECORD OPERATIONS
# =========================

def create_expense(
    db: Session,
    actor: Actor,
    *,
    category_id: str,
    description: str,
    amount,
    date: date,
    notes: Optional[str] = None,
    receipt_url: Optional[str] = None,
    owner_id: Optional[str] = None,
) -> Expense:
    expense_owner = actor.id
    submitted_by = None

    # Approvers and admins may file an expense on behalf of another user
    if owner_id and owner_id != actor.id and actor.is_reviewer:
        if not db.query(User.id).filter(User.id == owner_id).first():
            raise NotFoundError("User not found")
        expense_owner = owner_id
        submitted_by = actor.id

    if date is None:
        raise ValidationError("Date is required")
    _require_category(db, category_id)

    expense = Expense(
        user_id=expense_owner,
        submitted_by=submitted_by,
        category_id=category_id,
        description=_clean_description(description),
        amount=parse_amount(amount),
        date=date,
        status=ExpenseStatus.PENDING.value,
        notes=notes,
        receipt_url=receipt_url,
    )
    db.add(expense)
    db.commit()
    db.refresh(expense)

    if submitted_by:
        logger.info("User %s submitted expense %s on behalf of %s", actor.id, expense.id, expense_owner)
    return expense


def update_expense(db: Session, actor: Actor, expense_id: str, changes: dict) -> Expense:
    expense = get_expense(db, expense_id)
    ensure_can_edit(actor, expense)

    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    if "status" in changes:
        status = changes["status"]
        status = status.value if isinstance(status, ExpenseStatus) else status
        if status not in {s.value for s in ExpenseStatus}:
            raise ValidationError("Invalid status")
        # Direct status edits are a review action (forced re-review included)
        if status != expense.status and not actor.is_reviewer:
            raise AuthorizationError("Approver access required to change the status")
        changes["status"] = status
    if "description" in changes:
        changes["description"] = _clean_description(changes["description"])
    if "amount" in changes:
        changes["amount"] = parse_amount(changes["amount"])
    if "category_id" in changes:
        _require_category(db, changes["category_id"])
    if "date" in changes and changes["date"] is None:
        raise ValidationError("Date is required")

    for field, value in changes.items():
        setattr(expense, field, value)
    expense.updated_at = _now()

    db.commit()
    db.refresh(expense)
    return expense


def delete_expense(db: Session, actor: Actor, expense_id: str) -> dict:
    """Delete an expense; returns a snapshot of what was removed."""
    expense = get_expense(db, expense_id)
    snapshot = {"id": expense.id, "user_id": expense.user_id, "status": expense.status, "amount": expense.amount}

    if actor.is_reviewer:
        logger.info(
            "AUDIT: %s %s deleted expense %s (owner=%s, status=%s, amount=%s)",
            actor.role.value, actor.id, expense.id, expense.user_id, expense.status, expense.amount,
        )
    else:
        if expense.user_id != actor.id:
            raise AuthorizationError("You can only delete your own expenses")
        if expense.status == ExpenseStatus.APPROVED.value:
            raise InvalidStateError("Cannot delete approved expenses")

    db.delete(expense)
    db.commit()
    return snapshot


def query_expenses(
    db: Session,
    owner_id: Optional[str] = None,
    status: Optional[str] = None,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = None,
    order_by_date: bool = False,
) -> List[Expense]:
    """
    Expenses matching every given filter, newest first.

    Omitting ``owner_id`` returns every user's expenses; callers decide
    whether the requester may see that.
    """
    query = db.query(Expense)

    if owner_id:
        query = query.filter(Expense.user_id == owner_id)
    if status:
        query = query.filter(Expense.status == status)
    if category_id:
        query = query.filter(Expense.category_id == category_id)
    if search:
        query = query.filter(Expense.description.ilike(f"%{search}%"))
    if start_date:
        query = query.filter(Expense.date >= start_date)
    if end_date:
        query = query.filter(Expense.date <= end_date)

    if order_by_date:
        query = query.order_by(Expense.date.desc(), Expense.created_at.desc())
    else:
        query = query.order_by(Expense.created_at.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def recent_expenses(db: Session, owner_id: str, limit: int = 5) -> List[Expense]:
    return query_expenses(db, owner_id=owner_id, limit=limit)


def pending_expenses(db: Session) -> List[Expense]:
    return query_expenses(db, status=ExpenseStatus.PENDING.value)


def _user_summary(user: Optional[User]) -> dict:
    if user is None:
        return {"first_name": None, "last_name": None, "email": None}
    return {"first_name": user.first_name, "last_name": user.last_name, "email": user.email}


def expense_details(expense: Expense) -> dict:
    """Flatten an expense with its category and people for JSON output."""
    category = expense.category
    if category is None:
        category_data = {"id": expense.category_id or "", "name": UNKNOWN_CATEGORY_NAME}
    else:
        category_data = {
            "id": category.id,
            "name": category.name,
            "description": category.description,
            "parent_id": category.parent_id,
            "color": category.color,
            "created_at": category.created_at,
            "updated_at": category.updated_at,
        }

    return {
        "id": expense.id,
        "user_id": expense.user_id,
        "submitted_by": expense.submitted_by,
        "category_id": expense.category_id,
        "description": expense.description,
        "amount": expense.amount,
        "date": expense.date,
        "status": expense.status,
        "receipt_url": expense.receipt_url,
        "notes": expense.notes,
        "created_at": expense.created_at,
        "updated_at": expense.updated_at,
        "category": category_data,
        "user": _user_summary(expense.user),
        "submitted_by_user": _user_summary(expense.submitter) if expense.submitter else None,
    }


# =========================
# LIFECYCLE
# =========================

REVIEW_DECISIONS = {ExpenseStatus.APPROVED.value, ExpenseStatus.REJECTED.value}


def set_status(db: Session, actor: Actor, expense_id: str, status: str) -> Expense:
    """Approve or reject a pending expense."""
    require_role(actor, Role.APPROVER)

    status = status.value if isinstance(status, ExpenseStatus) else (status or "").strip().lower()
    if status not in REVIEW_DECISIONS:
        raise ValidationError("Invalid status. Must be 'approved' or 'rejected'")

    expense = get_expense(db, expense_id)
    if expense.status != ExpenseStatus.PENDING.value:
        raise InvalidStateError("Only pending expenses can be approved or rejected")

    previous = expense.status
    expense.status = status
    expense.updated_at = _now()
    db.commit()
    db.refresh(expense)

    logger.info("Expense %s %s -> %s by %s", expense.id, previous, status, actor.id)
    return expense


def resubmit(db: Session, actor: Actor, expense_id: str) -> Expense:
    """Send a rejected expense back for review."""
    expense = get_expense(db, expense_id)

    if not actor.is_reviewer and expense.user_id != actor.id:
        raise AuthorizationError("You can only resubmit your own expenses")
    if expense.status != ExpenseStatus.REJECTED.value:
        raise InvalidStateError("Only rejected expenses can be resubmitted")

    expense.status = ExpenseStatus.PENDING.value
    expense.updated_at = _now()
    db.commit()
    db.refresh(expense)

    logger.info("Expense %s resubmitted by %s", expense.id, actor.id)
    return expense
