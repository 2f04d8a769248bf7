# expense_tracker/models/expense.py
import enum
import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from expense_tracker.database import Base


# Lifecycle states of an expense
class ExpenseStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# A single expense. Owner, submitter and category are durable references:
# nothing here cascades to users or categories.
class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    # Null when self-submitted, otherwise the approver/admin who filed it
    submitted_by = Column(String(64), ForeignKey("users.id"), nullable=True)
    category_id = Column(String(64), ForeignKey("categories.id"), nullable=False, index=True)

    description = Column(Text, nullable=False)
    amount = Column(Numeric(10, 2), CheckConstraint("amount > 0"), nullable=False)
    date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ExpenseStatus.PENDING.value, index=True)
    receipt_url = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id], lazy="joined")
    submitter = relationship("User", foreign_keys=[submitted_by], lazy="joined")
    category = relationship("Category", lazy="joined")
