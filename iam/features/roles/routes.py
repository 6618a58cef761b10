"""
Role management API routes, including the role's permission bundle.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.database.engine import get_db
from iam.core.schemas import (
    AssignmentCounts,
    AssignmentResponse,
    DeleteResponse,
    ItemResponse,
    ListResponse,
    RemovalResponse,
)
from iam.features.access.dependencies import require_permission
from iam.features.assignments import service as assignments
from iam.features.assignments.schemas import AssignPermissionsToRole
from iam.features.roles import service
from iam.features.roles.schemas import RoleCreate, RoleUpdate, RoleWithPermissions
from iam.features.users.models import User


router = APIRouter()


@router.post("", response_model=ItemResponse[RoleWithPermissions], status_code=status.HTTP_201_CREATED)
async def create_role(
    role: RoleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Roles", "create")),
):
    """Create a new role."""
    db_role = await service.create_role(db, role)
    await db.commit()
    await db.refresh(db_role)
    return ItemResponse[RoleWithPermissions](
        data=RoleWithPermissions.model_validate(db_role),
        message="Role created successfully",
    )


@router.get("", response_model=ListResponse[RoleWithPermissions])
async def list_roles(
    search: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    limit: int = Query(1000, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Roles", "read")),
):
    """List roles with their permissions."""
    roles, total = await service.list_roles(
        db, search=search, is_active=is_active, limit=limit, offset=offset
    )
    return ListResponse[RoleWithPermissions](
        count=total,
        data=[RoleWithPermissions.model_validate(r) for r in roles],
    )


@router.get("/{role_id}", response_model=ItemResponse[RoleWithPermissions])
async def get_role(
    role_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Roles", "read")),
):
    """Get a specific role with its permissions."""
    role = await service.get_role(db, role_id)
    return ItemResponse[RoleWithPermissions](data=RoleWithPermissions.model_validate(role))


@router.put("/{role_id}", response_model=ItemResponse[RoleWithPermissions])
async def update_role(
    role_id: int,
    role_update: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Roles", "update")),
):
    """Update a role."""
    db_role = await service.update_role(db, role_id, role_update)
    await db.commit()
    await db.refresh(db_role)
    return ItemResponse[RoleWithPermissions](
        data=RoleWithPermissions.model_validate(db_role),
        message="Role updated successfully",
    )


@router.delete("/{role_id}", response_model=DeleteResponse)
async def delete_role(
    role_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Roles", "delete")),
):
    """Delete a role. Rejected with 409 while any group grants it."""
    result = await service.delete_role(db, role_id)
    await db.commit()
    return DeleteResponse(
        message="Role deleted successfully",
        deleted_id=result.deleted_id,
        cascaded=result.cascaded,
    )


@router.post("/{role_id}/permissions", response_model=AssignmentResponse)
async def assign_permissions(
    role_id: int,
    assignment: AssignPermissionsToRole,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Assignments", "create")),
):
    """Add permissions to a role. Existing links are skipped."""
    result = await assignments.assign_permissions_to_role(db, role_id, assignment.permission_ids)
    await db.commit()
    return AssignmentResponse(
        message=f"{result.assigned} permission(s) assigned to role",
        data=AssignmentCounts(assigned=result.assigned, skipped=result.skipped),
    )


@router.delete("/{role_id}/permissions/{permission_id}", response_model=RemovalResponse)
async def remove_permission(
    role_id: int,
    permission_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Assignments", "delete")),
):
    """Remove a permission from a role."""
    result = await assignments.remove_permission_from_role(db, role_id, permission_id)
    await db.commit()
    message = "Permission removed from role" if result.removed else "Permission was not assigned to role"
    return RemovalResponse(message=message, removed=result.removed)
