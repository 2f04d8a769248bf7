# expense_tracker/routes/users.py
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from expense_tracker.database import get_db
from expense_tracker.schemas.user import RoleUpdate, UserCreate, UserResponse, UserUpdate
from expense_tracker.services import users as user_service
from expense_tracker.services.permissions import Actor
from expense_tracker.utils.audit import client_ip, write_log
from expense_tracker.utils.tokenJWT import require_admin, require_approver

router = APIRouter(prefix="/api/users", tags=["Users"])


# List every account (Approver and Admin)
@router.get("", response_model=List[UserResponse])
def get_all_users(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_approver),
):
    return user_service.list_users(db)


# Create an account ahead of its first sign-in (Admin only)
@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    user = user_service.create_user(
        db,
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
        profile_image_url=payload.profile_image_url,
    )
    write_log(
        db, user_id=actor.id, action="USER_CREATE", resource="users",
        ip=client_ip(request), meta={"user_id": user.id, "email": user.email, "role": user.role},
    )
    return user


# Update profile fields (Admin only)
@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    return user_service.update_user(db, user_id, payload.model_dump(exclude_unset=True))


# Update user role (Admin only)
@router.put("/{user_id}/role", response_model=UserResponse)
def update_user_role(
    user_id: str,
    payload: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    user = user_service.update_user_role(db, user_id, payload.role)
    write_log(
        db, user_id=actor.id, action="USER_ROLE_UPDATE", resource="users",
        ip=client_ip(request), meta={"user_id": user.id, "role": user.role},
    )
    return user
