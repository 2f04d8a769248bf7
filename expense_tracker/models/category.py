# expense_tracker/models/category.py
import uuid

from sqlalchemy import Column, DateTime, String, Text, func

from expense_tracker.database import Base


# Expense category. parent_id is a plain column (no foreign key) so that
# children of a removed parent survive and are listed as top-level entries.
class Category(Base):
    __tablename__ = "categories"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    parent_id = Column(String(64), nullable=True, index=True)
    color = Column(String(7), nullable=True, default="#6366F1")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
