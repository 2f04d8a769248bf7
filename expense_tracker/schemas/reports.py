# expense_tracker/schemas/reports.py
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict

from expense_tracker.schemas.expense import ExpenseWithDetails


# Dashboard cards
class ExpenseStats(BaseModel):
    current_quarter_expenses: float
    this_month_expenses: float
    pending_expenses: float
    approved_expenses: float


class CategoryTotal(BaseModel):
    category_id: str
    category_name: str
    category_color: Optional[str] = None
    total_amount: float
    expense_count: int


class MonthlyTotal(BaseModel):
    month: str
    total_amount: float
    expense_count: int


class QuarterlyTotal(BaseModel):
    quarter: str
    total_amount: float
    expense_count: int


class DailyTotal(BaseModel):
    date: str
    total_amount: float
    expense_count: int


class ExpenseReport(BaseModel):
    expenses: List[ExpenseWithDetails]
    total_amount: float
    expense_count: int


# Admin data management
class StatusCount(BaseModel):
    status: str
    count: int


class ActivityItem(BaseModel):
    date: str
    action: str
    count: int


class DatabaseStats(BaseModel):
    total_expenses: int
    total_users: int
    total_categories: int
    expenses_by_status: List[StatusCount]
    recent_activity: List[ActivityItem]


class ExpenseImport(BaseModel):
    expenses: Any = None


class ImportSummary(BaseModel):
    message: str
    imported: int
    errors: List[str]


class PurgeSummary(BaseModel):
    message: str
    deleted_count: int


class ExportResponse(BaseModel):
    data: List[dict]
    export_date: datetime
    record_count: int


# Audit log page
class LogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[str] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: datetime
    meta: Optional[Any] = None


class LogPage(BaseModel):
    items: List[LogResponse]
    total: int
    page: int
    page_size: int
