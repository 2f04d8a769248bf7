from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr

from expense_tracker.models.users import Role


# Output schema for user profile details
class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Schema for accounts created by an administrator
class UserCreate(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str
    role: Role = Role.USER
    profile_image_url: Optional[str] = None


# Schema for profile edits; role changes go through RoleUpdate
class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


# Schema for administrative role updates
class RoleUpdate(BaseModel):
    role: Role
