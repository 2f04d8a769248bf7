# expense_tracker/utils/tokenJWT.py
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from expense_tracker.config import settings
from expense_tracker.database import get_db
from expense_tracker.models.users import Role, User
from expense_tracker.services.permissions import Actor, require_role
from expense_tracker.services.users import upsert_user

# Tokens come from the identity provider; a missing header is answered with 401 below
bearer_scheme = HTTPBearer(auto_error=False)


# Generate a signed access token (development tooling and tests)
def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# Retrieve the currently authenticated user based on the JWT token
def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id: str = payload.get("sub")
        # Ensure the subject is present in the token payload
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        # First login: provision the account from the identity claims
        if not payload.get("email"):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
        user = upsert_user(
            db,
            user_id,
            email=payload.get("email"),
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            profile_image_url=payload.get("profile_image_url"),
        )
    return user


def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    return Actor.from_user(current_user)


# Dependency factory for role-based access control
def role_required(required: Role):
    def _checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        require_role(actor, required)
        return actor
    return _checker


require_approver = role_required(Role.APPROVER)
require_admin = role_required(Role.ADMIN)
