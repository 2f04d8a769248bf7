# expense_tracker/schemas/expense.py
import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.models.expense import ExpenseStatus
from expense_tracker.schemas.category import CategoryOut


class ExpenseCreate(BaseModel):
    category_id: str
    description: str
    amount: Decimal
    date: dt.date
    notes: Optional[str] = None
    receipt_url: Optional[str] = None
    # Target owner when an approver/admin files on someone's behalf
    user_id: Optional[str] = None


# Schema for partial expense updates
class ExpenseUpdate(BaseModel):
    category_id: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[dt.date] = None
    notes: Optional[str] = None
    receipt_url: Optional[str] = None
    status: Optional[ExpenseStatus] = None


# Body of the approve/reject endpoint
class StatusUpdate(BaseModel):
    status: str = Field(..., description="approved or rejected")


class UserSummary(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class ExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    submitted_by: Optional[str] = None
    category_id: str
    description: str
    amount: float
    date: dt.date
    status: str
    receipt_url: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


# Expense joined with its category and the owner/submitter display fields
class ExpenseWithDetails(ExpenseOut):
    category: CategoryOut
    user: UserSummary
    submitted_by_user: Optional[UserSummary] = None
