# expense_tracker/routes/auth.py
from fastapi import APIRouter, Depends

from expense_tracker.models.users import User
from expense_tracker.schemas.user import UserResponse
from expense_tracker.utils.tokenJWT import get_current_user

router = APIRouter(prefix="/api/auth", tags=["Auth"])


# Current authenticated user; sign-in itself happens at the identity provider
@router.get("/user", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
