# expense_tracker/services/users.py
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from expense_tracker.exceptions import NotFoundError, ValidationError
from expense_tracker.models.users import Role, User

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.first_name, User.last_name).all()


def upsert_user(db: Session, user_id: str, email: Optional[str] = None, first_name: Optional[str] = None,
                last_name: Optional[str] = None, profile_image_url: Optional[str] = None) -> User:
    """Create or refresh an account from identity provider claims; the role is never touched."""
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        user = User(id=user_id, role=Role.USER.value)
        db.add(user)
        logger.info("First login for %s, created with role %s", user_id, Role.USER.value)

    user.email = email.strip().lower() if email else user.email
    user.first_name = first_name if first_name is not None else user.first_name
    user.last_name = last_name if last_name is not None else user.last_name
    user.profile_image_url = profile_image_url if profile_image_url is not None else user.profile_image_url
    user.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(user)
    return user


def create_user(db: Session, email: str, first_name: str, last_name: str, role: Role = Role.USER,
                profile_image_url: Optional[str] = None) -> User:
    normalized_email = email.strip().lower()
    if get_user_by_email(db, normalized_email):
        raise ValidationError("User with this email already exists")

    user = User(
        id=f"manual_{uuid.uuid4().hex}",
        email=normalized_email,
        first_name=first_name,
        last_name=last_name,
        role=Role.parse(role).value,
        profile_image_url=profile_image_url,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, user_id: str, changes: dict) -> User:
    user = get_user(db, user_id)

    if changes.get("email"):
        changes["email"] = changes["email"].strip().lower()
        other = get_user_by_email(db, changes["email"])
        if other and other.id != user.id:
            raise ValidationError("Email is already in use by another user")

    for field, value in changes.items():
        setattr(user, field, value)
    user.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(user)
    return user


def update_user_role(db: Session, user_id: str, role) -> User:
    try:
        role = Role.parse(role)
    except ValueError:
        raise ValidationError("Invalid role")

    user = get_user(db, user_id)

    # Never leave the system without an administrator
    if user.role == Role.ADMIN.value and role != Role.ADMIN:
        admins = db.query(User).filter(User.role == Role.ADMIN.value).count()
        if admins <= 1:
            raise ValidationError("Cannot remove the last admin user")

    previous = user.role
    user.role = role.value
    user.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    logger.info("Role of %s changed %s -> %s", user.id, previous, role.value)
    return user


def ensure_default_admin(db: Session, user_id: str, email: Optional[str] = None,
                         first_name: Optional[str] = None, last_name: Optional[str] = None) -> Optional[User]:
    """
    Make sure at least one administrator exists.

    Does nothing while any admin is present. Otherwise the account with
    ``user_id`` (or, failing that, the one holding ``email``) is promoted, or
    created when neither exists. Returns the promoted or created user.
    """
    if db.query(User.id).filter(User.role == Role.ADMIN.value).first():
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if user is None and email:
        user = get_user_by_email(db, email)
    if user is None:
        user = User(
            id=user_id,
            email=email.strip().lower() if email else None,
            first_name=first_name,
            last_name=last_name,
        )
        db.add(user)

    user.role = Role.ADMIN.value
    user.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    logger.warning("No administrator found, granted admin role to %s", user.id)
    return user
