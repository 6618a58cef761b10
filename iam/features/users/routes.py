"""
User feature routes.
"""
from typing import Annotated, Optional
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
from iam.features.assignments.schemas import AssignPermissionsToUser
from iam.features.users import service
from iam.features.users.dependencies import get_current_user
from iam.features.users.models import User
from iam.features.users.schemas import UserCreate, UserResponse, UserUpdate


router = APIRouter()


@router.get("/me", response_model=ItemResponse[UserResponse])
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)]
):
    """Get current authenticated user's profile."""
    return ItemResponse[UserResponse](data=UserResponse.model_validate(user))


@router.post("", response_model=ItemResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_user(
    user: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("Users", "create"))],
):
    """Create a new user."""
    db_user = await service.create_user(db, user)
    await db.commit()
    await db.refresh(db_user)
    return ItemResponse[UserResponse](
        data=UserResponse.model_validate(db_user),
        message="User created successfully",
    )


@router.get("", response_model=ListResponse[UserResponse])
async def list_users(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("Users", "read"))],
    search: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    limit: int = Query(1000, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    """List users, searching username, email and names."""
    users, total = await service.list_users(
        db, search=search, is_active=is_active, limit=limit, offset=offset
    )
    return ListResponse[UserResponse](
        count=total,
        data=[UserResponse.model_validate(u) for u in users],
    )


@router.get("/{user_id}", response_model=ItemResponse[UserResponse])
async def get_user(
    user_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("Users", "read"))],
):
    """Get a user by ID."""
    user = await service.get_user(db, user_id)
    return ItemResponse[UserResponse](data=UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=ItemResponse[UserResponse])
async def update_user(
    user_id: int,
    user_update: UserUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("Users", "update"))],
):
    """Update a user. A new password is re-hashed."""
    db_user = await service.update_user(db, user_id, user_update)
    await db.commit()
    await db.refresh(db_user)
    return ItemResponse[UserResponse](
        data=UserResponse.model_validate(db_user),
        message="User updated successfully",
    )


@router.delete("/{user_id}", response_model=DeleteResponse)
async def delete_user(
    user_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("Users", "delete"))],
):
    """Delete a user along with memberships and direct grants."""
    result = await service.delete_user(db, user_id)
    await db.commit()
    return DeleteResponse(
        message="User deleted successfully",
        deleted_id=result.deleted_id,
        cascaded=result.cascaded,
    )


@router.post("/{user_id}/permissions", response_model=AssignmentResponse)
async def assign_permissions(
    user_id: int,
    assignment: AssignPermissionsToUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("Assignments", "create"))],
):
    """Grant permissions directly to a user."""
    result = await assignments.assign_permissions_to_user(db, user_id, assignment.permission_ids)
    await db.commit()
    return AssignmentResponse(
        message=f"{result.assigned} permission(s) granted to user",
        data=AssignmentCounts(assigned=result.assigned, skipped=result.skipped),
    )


@router.delete("/{user_id}/permissions/{permission_id}", response_model=RemovalResponse)
async def remove_permission(
    user_id: int,
    permission_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("Assignments", "delete"))],
):
    """Revoke a direct permission from a user."""
    result = await assignments.remove_permission_from_user(db, user_id, permission_id)
    await db.commit()
    message = "Permission removed from user" if result.removed else "Permission was not granted to user"
    return RemovalResponse(message=message, removed=result.removed)
