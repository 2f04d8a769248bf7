from expense_tracker.models.users import Role, User
from expense_tracker.models.category import Category
from expense_tracker.models.expense import Expense, ExpenseStatus
from expense_tracker.models.log import Log

__all__ = ["Role", "User", "Category", "Expense", "ExpenseStatus", "Log"]
