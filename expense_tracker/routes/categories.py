# expense_tracker/routes/categories.py
from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from expense_tracker.database import get_db
from expense_tracker.exceptions import ReferentialIntegrityError
from expense_tracker.models.users import User
from expense_tracker.schemas.category import CategoryCreate, CategoryOut, CategoryTreeNode, CategoryUpdate
from expense_tracker.services import categories as category_service
from expense_tracker.services.permissions import Actor
from expense_tracker.utils.audit import client_ip, write_log
from expense_tracker.utils.tokenJWT import get_current_user, require_admin

router = APIRouter(prefix="/api/categories", tags=["Categories"])


# Top-level categories with their subcategories nested
@router.get("", response_model=List[CategoryTreeNode])
def list_categories(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return category_service.list_categories(db)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return category_service.get_category(db, category_id)


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    return category_service.create_category(
        db,
        name=payload.name,
        description=payload.description,
        parent_id=payload.parent_id,
        color=payload.color,
    )


# Partial update (Admin only)
@router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    return category_service.update_category(db, category_id, payload.model_dump(exclude_unset=True))


# Fails with 400 while any expense still uses the category
@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: str,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    try:
        category_service.delete_category(db, category_id)
    except ReferentialIntegrityError:
        write_log(
            db, user_id=actor.id, action="CATEGORY_DELETE", resource="categories", status="FAIL",
            ip=client_ip(request), meta={"category_id": category_id, "reason": "in use"},
        )
        raise
    write_log(
        db, user_id=actor.id, action="CATEGORY_DELETE", resource="categories",
        ip=client_ip(request), meta={"category_id": category_id},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
