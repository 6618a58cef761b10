"""
Pydantic schemas for role management.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import Field

from iam.core.schemas import CamelModel
from iam.features.permissions.schemas import PermissionResponse


class RoleBase(CamelModel):
    """Base role schema."""
    name: str = Field(..., min_length=1, max_length=100, description="Role name")
    description: Optional[str] = Field(None, max_length=1000, description="Role description")


class RoleCreate(RoleBase):
    """Schema for creating a new role."""
    is_active: bool = True


class RoleUpdate(CamelModel):
    """Schema for updating a role."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    is_active: Optional[bool] = None


class RoleResponse(RoleBase):
    """Schema for role response."""
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class RoleWithPermissions(RoleResponse):
    """Schema for role with permissions."""
    permissions: List[PermissionResponse] = []
