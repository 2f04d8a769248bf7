# expense_tracker/services/categories.py
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from expense_tracker.config import settings
from expense_tracker.exceptions import NotFoundError, ReferentialIntegrityError, ValidationError
from expense_tracker.models.category import Category
from expense_tracker.models.expense import Expense
from expense_tracker.schemas.category import CategoryOut

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {"name": "Equipment", "description": "Heavy machinery, tools, and equipment expenses", "color": "#F59E0B"},
    {"name": "Vehicle", "description": "Fuel, maintenance, and vehicle-related costs", "color": "#EF4444"},
    {"name": "Utilities", "description": "Utility bills and related expenses", "color": "#3B82F6"},
    {"name": "Materials", "description": "Construction and utility materials", "color": "#10B981"},
    {"name": "Meals & Entertainment", "description": "Business meals and entertainment", "color": "#8B5CF6"},
    {"name": "Travel", "description": "Travel and accommodation expenses", "color": "#F97316"},
]

CATEGORY_IN_USE_MESSAGE = (
    "Cannot delete category because it has associated expenses. "
    "Please reassign or delete the expenses first."
)


def build_category_tree(categories) -> List[dict]:
    """
    Assemble categories into a forest of plain dicts.

    Each node gets a ``subcategories`` list holding the nodes whose parent id
    equals its id. Nodes without a parent, or whose parent is missing, become
    roots. A parent chain that loops back on itself is cut at its first member
    by name, so every category appears exactly once. Siblings are sorted by name.
    """
    ordered = sorted(categories, key=lambda c: ((c.name or "").lower(), c.id))
    nodes: Dict[str, dict] = {}
    for category in ordered:
        node = CategoryOut.model_validate(category).model_dump()
        node["subcategories"] = []
        nodes[category.id] = node

    parent_of: Dict[str, Optional[str]] = {}
    for category in ordered:
        parent_id = category.parent_id
        valid = parent_id and parent_id != category.id and parent_id in nodes
        parent_of[category.id] = parent_id if valid else None

    for category in ordered:
        seen = set()
        current = parent_of[category.id]
        while current is not None and current not in seen:
            if current == category.id:
                parent_of[category.id] = None
                break
            seen.add(current)
            current = parent_of[current]

    roots = []
    for category in ordered:
        node = nodes[category.id]
        parent_id = parent_of[category.id]
        if parent_id is None:
            roots.append(node)
        else:
            nodes[parent_id]["subcategories"].append(node)
    return roots


def list_categories(db: Session) -> List[dict]:
    return build_category_tree(db.query(Category).all())


def get_category(db: Session, category_id: str) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise NotFoundError("Category not found")
    return category


def find_category_by_name(db: Session, name: str) -> Optional[Category]:
    return db.query(Category).filter(Category.name == name).first()


def _clean_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")
    return name


def _check_parent(db: Session, parent_id: str, category_id: Optional[str] = None) -> None:
    parent = db.query(Category).filter(Category.id == parent_id).first()
    if not parent:
        raise NotFoundError("Parent category not found")
    if category_id is None:
        return

    # Walk up from the new parent; meeting the category itself means a cycle
    seen = set()
    current = parent
    while current is not None and current.id not in seen:
        if current.id == category_id:
            raise ValidationError("A category cannot be nested under itself or its subcategories")
        seen.add(current.id)
        if not current.parent_id:
            break
        current = db.query(Category).filter(Category.id == current.parent_id).first()


def create_category(
    db: Session,
    name: str,
    description: Optional[str] = None,
    parent_id: Optional[str] = None,
    color: Optional[str] = None,
) -> Category:
    name = _clean_name(name)
    if parent_id:
        _check_parent(db, parent_id)

    category = Category(
        name=name,
        description=description,
        parent_id=parent_id or None,
        color=color or settings.DEFAULT_CATEGORY_COLOR,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, category_id: str, changes: dict) -> Category:
    category = get_category(db, category_id)

    if "name" in changes:
        changes["name"] = _clean_name(changes["name"])
    if changes.get("parent_id"):
        _check_parent(db, changes["parent_id"], category_id=category.id)
    if "color" in changes and not changes["color"]:
        changes["color"] = settings.DEFAULT_CATEGORY_COLOR

    for field, value in changes.items():
        setattr(category, field, value)
    category.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: str) -> None:
    category = get_category(db, category_id)

    in_use = db.query(Expense.id).filter(Expense.category_id == category.id).first()
    if in_use:
        raise ReferentialIntegrityError(CATEGORY_IN_USE_MESSAGE)

    db.delete(category)
    db.commit()
    logger.info("Deleted category %s (%s)", category.id, category.name)


def seed_default_categories(db: Session) -> int:
    if db.query(Category.id).first():
        return 0
    for data in DEFAULT_CATEGORIES:
        db.add(Category(**data))
    db.commit()
    logger.info("Seeded %d default categories", len(DEFAULT_CATEGORIES))
    return len(DEFAULT_CATEGORIES)
