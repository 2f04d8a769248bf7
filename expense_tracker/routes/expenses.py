# expense_tracker/routes/expenses.py
import logging
import uuid
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from expense_tracker.config import settings
from expense_tracker.database import get_db
from expense_tracker.exceptions import InvalidStateError, ValidationError
from expense_tracker.schemas.expense import ExpenseCreate, ExpenseOut, ExpenseUpdate, ExpenseWithDetails, StatusUpdate
from expense_tracker.services import expenses as expense_service
from expense_tracker.services.permissions import Actor
from expense_tracker.utils.audit import client_ip, write_log
from expense_tracker.utils.tokenJWT import get_current_actor, require_approver

router = APIRouter(prefix="/api/expenses", tags=["Expenses"])
logger = logging.getLogger(__name__)

ALLOWED_RECEIPT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "application/pdf": "pdf",
}


def _filter_value(value: Optional[str]) -> Optional[str]:
    # The UI sends "all" for an unset dropdown
    if not value or value == "all":
        return None
    return value


def _details(expenses) -> List[dict]:
    return [expense_service.expense_details(e) for e in expenses]


# =========================
# LISTS
# =========================
@router.get("", response_model=List[ExpenseWithDetails])
def list_expenses(
    status_filter: Optional[str] = Query(None, alias="status"),
    category_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Approvers and admins see every expense, basic users only their own."""
    expenses = expense_service.query_expenses(
        db,
        owner_id=None if actor.is_reviewer else actor.id,
        status=_filter_value(status_filter),
        category_id=_filter_value(category_id),
        search=search,
    )
    return _details(expenses)


@router.get("/my", response_model=List[ExpenseWithDetails])
def list_my_expenses(
    status_filter: Optional[str] = Query(None, alias="status"),
    category_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    expenses = expense_service.query_expenses(
        db,
        owner_id=actor.id,
        status=_filter_value(status_filter),
        category_id=_filter_value(category_id),
        search=search,
    )
    return _details(expenses)


@router.get("/my/recent", response_model=List[ExpenseWithDetails])
def list_my_recent_expenses(
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return _details(expense_service.recent_expenses(db, actor.id, limit=limit))


@router.get("/pending", response_model=List[ExpenseWithDetails])
def list_pending_expenses(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_approver),
):
    return _details(expense_service.pending_expenses(db))


# =========================
# SINGLE EXPENSE
# =========================
@router.get("/{expense_id}", response_model=ExpenseWithDetails)
def get_expense(
    expense_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    expense = expense_service.get_expense(db, expense_id)
    expense_service.ensure_can_view(actor, expense)
    return expense_service.expense_details(expense)


@router.post("", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
def create_expense(
    payload: ExpenseCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return expense_service.create_expense(
        db,
        actor,
        category_id=payload.category_id,
        description=payload.description,
        amount=payload.amount,
        date=payload.date,
        notes=payload.notes,
        receipt_url=payload.receipt_url,
        owner_id=payload.user_id,
    )


@router.put("/{expense_id}", response_model=ExpenseOut)
def update_expense(
    expense_id: str,
    payload: ExpenseUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    changes = payload.model_dump(exclude_unset=True)
    expense = expense_service.update_expense(db, actor, expense_id, changes)

    if "status" in changes:
        write_log(
            db, user_id=actor.id, action="EXPENSE_UPDATE", resource="expenses",
            ip=client_ip(request), meta={"expense_id": expense.id, "status": expense.status},
        )
    return expense


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: str,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    expense = expense_service.delete_expense(db, actor, expense_id)

    if actor.is_reviewer:
        write_log(
            db, user_id=actor.id, action="EXPENSE_DELETE", resource="expenses",
            ip=client_ip(request),
            meta={"expense_id": expense_id, "owner": expense["user_id"], "status": expense["status"]},
        )
    return {"message": "Expense deleted successfully"}


# =========================
# LIFECYCLE
# =========================
@router.put("/{expense_id}/approve", response_model=ExpenseOut)
def review_expense(
    expense_id: str,
    payload: StatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_approver),
):
    try:
        expense = expense_service.set_status(db, actor, expense_id, payload.status)
    except (InvalidStateError, ValidationError) as e:
        write_log(
            db, user_id=actor.id, action="EXPENSE_REVIEW", resource="expenses", status="FAIL",
            ip=client_ip(request), meta={"expense_id": expense_id, "status": payload.status, "reason": e.message},
        )
        raise
    write_log(
        db, user_id=actor.id, action="EXPENSE_REVIEW", resource="expenses",
        ip=client_ip(request), meta={"expense_id": expense.id, "status": expense.status},
    )
    return expense


@router.put("/{expense_id}/resubmit", response_model=ExpenseOut)
def resubmit_expense(
    expense_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return expense_service.resubmit(db, actor, expense_id)


# =========================
# RECEIPT UPLOAD
# =========================
@router.post("/{expense_id}/receipt", response_model=ExpenseOut)
def upload_receipt(
    expense_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    expense = expense_service.get_expense(db, expense_id)
    expense_service.ensure_can_edit(actor, expense)

    ext = ALLOWED_RECEIPT_TYPES.get(file.content_type)
    if ext is None:
        raise HTTPException(status_code=400, detail="Only images (JPEG, JPG, PNG) and PDF files are allowed")

    try:
        content = file.file.read(settings.MAX_UPLOAD_BYTES + 1)
    finally:
        file.file.close()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File is too large")

    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    unique_filename = f"{uuid.uuid4()}.{ext}"
    (upload_dir / unique_filename).write_bytes(content)
    logger.info("Stored receipt %s for expense %s", unique_filename, expense_id)

    return expense_service.update_expense(db, actor, expense_id, {"receipt_url": f"/uploads/{unique_filename}"})
