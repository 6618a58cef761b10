"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import EmailStr, Field

from iam.core.schemas import CamelModel


class UserBase(CamelModel):
    """Base user schema with common fields."""
    username: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    first_name: Optional[str] = Field(None, max_length=150)
    last_name: Optional[str] = Field(None, max_length=150)


class UserCreate(UserBase):
    """Schema for creating a new user."""
    password: str = Field(..., min_length=8, max_length=128)
    is_active: bool = True


class UserUpdate(CamelModel):
    """Schema for updating user information."""
    username: Optional[str] = Field(None, min_length=1, max_length=150)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    first_name: Optional[str] = Field(None, max_length=150)
    last_name: Optional[str] = Field(None, max_length=150)
    is_active: Optional[bool] = None


class UserGroup(CamelModel):
    """Group as listed on a user."""
    id: int
    name: str
    is_active: bool


class UserResponse(UserBase):
    """Schema for user responses. The password hash is never exposed."""
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
    groups: List[UserGroup] = []
