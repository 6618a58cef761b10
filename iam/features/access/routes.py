"""
Caller-facing authorization routes: own permissions, capability maps,
permission checks and what-if simulation.
"""
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.database.engine import get_db
from iam.features.access.dependencies import get_effective_permissions, require_permission
from iam.features.access.gate import allowed, capabilities
from iam.features.access.pages import accessible_pages
from iam.features.access.resolver import EffectivePermissions
from iam.features.access.schemas import (
    CapabilitiesResponse,
    EffectivePermissionResponse,
    EffectivePermissionsResponse,
    PagesResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    SimulateActionRequest,
    SimulateActionResponse,
    SimulationData,
)
from iam.features.access.simulation import simulate_action
from iam.features.modules.models import Module
from iam.features.users.models import User


router = APIRouter()


@router.get("/me/permissions", response_model=EffectivePermissionsResponse)
async def get_my_permissions(
    effective: EffectivePermissions = Depends(get_effective_permissions),
):
    """Get the caller's effective permissions."""
    return EffectivePermissionsResponse(
        count=len(effective),
        data=[EffectivePermissionResponse.model_validate(p) for p in effective],
    )


@router.get("/me/capabilities", response_model=CapabilitiesResponse)
async def get_my_capabilities(
    db: AsyncSession = Depends(get_db),
    effective: EffectivePermissions = Depends(get_effective_permissions),
):
    """Create/read/update/delete flags for every active module."""
    result = await db.execute(select(Module.name).where(Module.is_active.is_(True)))
    return CapabilitiesResponse(data=capabilities(effective, result.scalars().all()))


@router.get("/me/pages", response_model=PagesResponse)
async def get_my_pages(
    effective: EffectivePermissions = Depends(get_effective_permissions),
):
    """Console pages the caller may open."""
    return PagesResponse(data=accessible_pages(effective))


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    check_request: PermissionCheckRequest,
    db: AsyncSession = Depends(get_db),
    effective: EffectivePermissions = Depends(get_effective_permissions),
):
    """Check if the current user has a specific permission."""
    decision = await allowed(
        db, effective.user_id, check_request.module_name, check_request.action, effective=effective
    )
    return PermissionCheckResponse(
        granted=decision.granted,
        reason=decision.reason,
        sources=list(decision.sources),
    )


@router.post("/simulate-action", response_model=SimulateActionResponse)
async def simulate(
    simulation: SimulateActionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Permissions", "read")),
):
    """Check what any user would be allowed to do, without side effects."""
    result = await simulate_action(
        db,
        simulation.user_id,
        simulation.action,
        module_id=simulation.module_id,
        module_name=simulation.module_name,
    )
    return SimulateActionResponse(data=SimulationData.model_validate(result))
