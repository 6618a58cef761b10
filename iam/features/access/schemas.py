"""
Pydantic schemas for permission checks, capabilities and simulations.
"""
from typing import Dict, List, Optional
from pydantic import Field

from iam.core.schemas import CamelModel
from iam.features.modules.schemas import ModuleSummary


class EffectivePermissionResponse(CamelModel):
    """A permission in the caller's effective set."""
    id: int
    name: str
    description: Optional[str] = None
    action: str
    module_id: int
    is_active: bool = True
    module: ModuleSummary
    sources: List[str] = []


class EffectivePermissionsResponse(CamelModel):
    success: bool = True
    count: int
    data: List[EffectivePermissionResponse]


class CapabilitiesResponse(CamelModel):
    success: bool = True
    data: Dict[str, Dict[str, bool]]


class PagesResponse(CamelModel):
    success: bool = True
    data: List[str]


class PermissionCheckRequest(CamelModel):
    """Schema for checking if the caller has a permission."""
    module_name: str = Field(..., min_length=1, description="Module name (e.g., 'Users')")
    action: str = Field(..., min_length=1, description="Action")


class PermissionCheckResponse(CamelModel):
    granted: bool
    reason: Optional[str] = None
    sources: List[str] = []


class SimulateActionRequest(CamelModel):
    user_id: int
    module_id: Optional[int] = None
    module_name: Optional[str] = None
    action: str = Field(..., min_length=1)


class SimulationData(CamelModel):
    user_id: int
    module_id: Optional[int] = None
    module_name: str
    action: str
    allowed: bool
    reason: Optional[str] = None
    justification: List[str] = []


class SimulateActionResponse(CamelModel):
    success: bool = True
    data: SimulationData
