# expense_tracker/schemas/category.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class CategoryCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    parent_id: Optional[str] = None
    color: Optional[str] = Field(None, pattern=HEX_COLOR)


# Schema for partial category updates
class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    parent_id: Optional[str] = None
    color: Optional[str] = Field(None, pattern=HEX_COLOR)


class CategoryOut(ORMBase):
    id: str
    name: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    color: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# A top-level category with its children nested one level down
class CategoryTreeNode(CategoryOut):
    subcategories: List["CategoryTreeNode"] = []
