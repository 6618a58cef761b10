"""
Pydantic schemas for permission management.
"""
from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator

from iam.core.schemas import CamelModel
from iam.features.modules.schemas import ModuleSummary
from iam.features.permissions.models import Action


class PermissionBase(CamelModel):
    """Base permission schema."""
    name: str = Field(..., min_length=1, max_length=100, description="Display name (e.g., 'Users:read')")
    description: Optional[str] = Field(None, max_length=1000, description="Permission description")
    action: Action = Field(..., description="One of create, read, update, delete")
    module_id: int = Field(..., description="Owning module ID")

    @field_validator("action", mode="before")
    @classmethod
    def action_lowercase(cls, v):
        """Accept 'READ' as well as 'read'."""
        return v.lower() if isinstance(v, str) else v


class PermissionCreate(PermissionBase):
    """Schema for creating a new permission."""
    is_active: bool = True


class PermissionUpdate(CamelModel):
    """
    Schema for updating a permission.

    ``module_id`` is accepted only so that a request trying to move the
    permission to another module can be rejected explicitly.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    action: Optional[Action] = None
    module_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("action", mode="before")
    @classmethod
    def action_lowercase(cls, v):
        return v.lower() if isinstance(v, str) else v


class PermissionResponse(CamelModel):
    """Schema for permission response."""
    id: int
    name: str
    description: Optional[str] = None
    action: str
    module_id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
    module: Optional[ModuleSummary] = None
