"""
Pydantic schemas for module management.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import Field

from iam.core.schemas import CamelModel


class ModuleBase(CamelModel):
    """Base module schema."""
    name: str = Field(..., min_length=1, max_length=100, description="Unique module name")
    description: Optional[str] = Field(None, max_length=1000, description="Module description")


class ModuleCreate(ModuleBase):
    """Schema for creating a new module."""
    is_active: bool = True


class ModuleUpdate(CamelModel):
    """Schema for updating a module."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    is_active: Optional[bool] = None


class ModulePermission(CamelModel):
    """Permission as listed under its module."""
    id: int
    name: str
    action: str
    is_active: bool


class ModuleResponse(ModuleBase):
    """Schema for module response."""
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ModuleWithPermissions(ModuleResponse):
    permissions: List[ModulePermission] = []


class ModuleSummary(CamelModel):
    id: int
    name: str
