"""
Permission management API routes.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.database.engine import get_db
from iam.core.schemas import DeleteResponse, ItemResponse, ListResponse
from iam.features.access.dependencies import require_permission
from iam.features.permissions import service
from iam.features.permissions.schemas import PermissionCreate, PermissionResponse, PermissionUpdate
from iam.features.users.models import User


router = APIRouter()


@router.post("", response_model=ItemResponse[PermissionResponse], status_code=status.HTTP_201_CREATED)
async def create_permission(
    permission: PermissionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Permissions", "create")),
):
    """Create a new permission."""
    db_permission = await service.create_permission(db, permission)
    await db.commit()
    await db.refresh(db_permission)
    return ItemResponse[PermissionResponse](
        data=PermissionResponse.model_validate(db_permission),
        message="Permission created successfully",
    )


@router.get("", response_model=ListResponse[PermissionResponse])
async def list_permissions(
    search: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    module_id: Optional[int] = Query(None, alias="moduleId"),
    limit: int = Query(1000, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Permissions", "read")),
):
    """List permissions, optionally scoped to one module."""
    permissions, total = await service.list_permissions(
        db, search=search, is_active=is_active, module_id=module_id, limit=limit, offset=offset
    )
    return ListResponse[PermissionResponse](
        count=total,
        data=[PermissionResponse.model_validate(p) for p in permissions],
    )


@router.get("/{permission_id}", response_model=ItemResponse[PermissionResponse])
async def get_permission(
    permission_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Permissions", "read")),
):
    """Get a specific permission by ID."""
    permission = await service.get_permission(db, permission_id)
    return ItemResponse[PermissionResponse](data=PermissionResponse.model_validate(permission))


@router.put("/{permission_id}", response_model=ItemResponse[PermissionResponse])
async def update_permission(
    permission_id: int,
    permission_update: PermissionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Permissions", "update")),
):
    """Update a permission. Its module cannot change."""
    db_permission = await service.update_permission(db, permission_id, permission_update)
    await db.commit()
    await db.refresh(db_permission)
    return ItemResponse[PermissionResponse](
        data=PermissionResponse.model_validate(db_permission),
        message="Permission updated successfully",
    )


@router.delete("/{permission_id}", response_model=DeleteResponse)
async def delete_permission(
    permission_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Permissions", "delete")),
):
    """Delete a permission and every grant of it."""
    result = await service.delete_permission(db, permission_id)
    await db.commit()
    return DeleteResponse(
        message="Permission deleted successfully",
        deleted_id=result.deleted_id,
        cascaded=result.cascaded,
    )
