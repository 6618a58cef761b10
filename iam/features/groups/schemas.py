"""
Pydantic schemas for group management.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import Field

from iam.core.schemas import CamelModel
from iam.features.roles.schemas import RoleResponse


class GroupBase(CamelModel):
    """Base group schema."""
    name: str = Field(..., min_length=1, max_length=100, description="Group name")
    description: Optional[str] = Field(None, max_length=1000, description="Group description")


class GroupCreate(GroupBase):
    """Schema for creating a new group."""
    is_active: bool = True


class GroupUpdate(CamelModel):
    """Schema for updating a group."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    is_active: Optional[bool] = None


class GroupMember(CamelModel):
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool


class GroupResponse(GroupBase):
    """Schema for group response."""
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class GroupWithMembers(GroupResponse):
    """Group with its users and roles, for display."""
    users: List[GroupMember] = []
    roles: List[RoleResponse] = []
