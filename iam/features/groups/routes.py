"""
Group management API routes, including membership and role grants.
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
from iam.features.assignments.schemas import AssignRolesToGroup, AssignUsersToGroup
from iam.features.groups import service
from iam.features.groups.schemas import GroupCreate, GroupUpdate, GroupWithMembers
from iam.features.users.models import User


router = APIRouter()


@router.post("", response_model=ItemResponse[GroupWithMembers], status_code=status.HTTP_201_CREATED)
async def create_group(
    group: GroupCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Groups", "create")),
):
    """Create a new group."""
    db_group = await service.create_group(db, group)
    await db.commit()
    await db.refresh(db_group)
    return ItemResponse[GroupWithMembers](
        data=GroupWithMembers.model_validate(db_group),
        message="Group created successfully",
    )


@router.get("", response_model=ListResponse[GroupWithMembers])
async def list_groups(
    search: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    limit: int = Query(1000, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Groups", "read")),
):
    """List groups with members and roles."""
    groups, total = await service.list_groups(
        db, search=search, is_active=is_active, limit=limit, offset=offset
    )
    return ListResponse[GroupWithMembers](
        count=total,
        data=[GroupWithMembers.model_validate(g) for g in groups],
    )


@router.get("/{group_id}", response_model=ItemResponse[GroupWithMembers])
async def get_group(
    group_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Groups", "read")),
):
    """Get a specific group."""
    group = await service.get_group(db, group_id)
    return ItemResponse[GroupWithMembers](data=GroupWithMembers.model_validate(group))


@router.put("/{group_id}", response_model=ItemResponse[GroupWithMembers])
async def update_group(
    group_id: int,
    group_update: GroupUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Groups", "update")),
):
    """Update a group."""
    db_group = await service.update_group(db, group_id, group_update)
    await db.commit()
    await db.refresh(db_group)
    return ItemResponse[GroupWithMembers](
        data=GroupWithMembers.model_validate(db_group),
        message="Group updated successfully",
    )


@router.delete("/{group_id}", response_model=DeleteResponse)
async def delete_group(
    group_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Groups", "delete")),
):
    """Delete a group. Rejected with 409 while it has members or role grants."""
    result = await service.delete_group(db, group_id)
    await db.commit()
    return DeleteResponse(
        message="Group deleted successfully",
        deleted_id=result.deleted_id,
        cascaded=result.cascaded,
    )


@router.post("/{group_id}/users", response_model=AssignmentResponse)
async def assign_users(
    group_id: int,
    assignment: AssignUsersToGroup,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Assignments", "create")),
):
    """Add users to a group. Existing members are skipped."""
    result = await assignments.assign_users_to_group(db, group_id, assignment.user_ids)
    await db.commit()
    return AssignmentResponse(
        message=f"{result.assigned} user(s) added to group",
        data=AssignmentCounts(assigned=result.assigned, skipped=result.skipped),
    )


@router.delete("/{group_id}/users/{user_id}", response_model=RemovalResponse)
async def remove_user(
    group_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Assignments", "delete")),
):
    """Remove a user from a group."""
    result = await assignments.remove_user_from_group(db, group_id, user_id)
    await db.commit()
    message = "User removed from group" if result.removed else "User was not a member of the group"
    return RemovalResponse(message=message, removed=result.removed)


@router.post("/{group_id}/roles", response_model=AssignmentResponse)
async def assign_roles(
    group_id: int,
    assignment: AssignRolesToGroup,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Assignments", "create")),
):
    """Grant roles to a group. Existing grants are skipped."""
    result = await assignments.assign_roles_to_group(db, group_id, assignment.role_ids)
    await db.commit()
    return AssignmentResponse(
        message=f"{result.assigned} role(s) granted to group",
        data=AssignmentCounts(assigned=result.assigned, skipped=result.skipped),
    )


@router.delete("/{group_id}/roles/{role_id}", response_model=RemovalResponse)
async def remove_role(
    group_id: int,
    role_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Assignments", "delete")),
):
    """Revoke a role from a group."""
    result = await assignments.remove_role_from_group(db, group_id, role_id)
    await db.commit()
    message = "Role removed from group" if result.removed else "Role was not granted to the group"
    return RemovalResponse(message=message, removed=result.removed)
