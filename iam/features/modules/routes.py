"""
Module management API routes.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.database.engine import get_db
from iam.core.schemas import ItemResponse, ListResponse, ModuleDeleteResponse
from iam.features.access.dependencies import require_permission
from iam.features.modules import service
from iam.features.modules.schemas import ModuleCreate, ModuleUpdate, ModuleWithPermissions
from iam.features.users.models import User


router = APIRouter()


@router.post("", response_model=ItemResponse[ModuleWithPermissions], status_code=status.HTTP_201_CREATED)
async def create_module(
    module: ModuleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Modules", "create")),
):
    """Create a new module."""
    db_module = await service.create_module(db, module)
    await db.commit()
    await db.refresh(db_module)
    return ItemResponse[ModuleWithPermissions](
        data=ModuleWithPermissions.model_validate(db_module),
        message="Module created successfully",
    )


@router.get("", response_model=ListResponse[ModuleWithPermissions])
async def list_modules(
    search: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    limit: int = Query(1000, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Modules", "read")),
):
    """List modules with optional search and activity filtering."""
    modules, total = await service.list_modules(
        db, search=search, is_active=is_active, limit=limit, offset=offset
    )
    return ListResponse[ModuleWithPermissions](
        count=total,
        data=[ModuleWithPermissions.model_validate(m) for m in modules],
    )


@router.get("/{module_id}", response_model=ItemResponse[ModuleWithPermissions])
async def get_module(
    module_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Modules", "read")),
):
    """Get a specific module with its permissions."""
    module = await service.get_module(db, module_id)
    return ItemResponse[ModuleWithPermissions](data=ModuleWithPermissions.model_validate(module))


@router.put("/{module_id}", response_model=ItemResponse[ModuleWithPermissions])
async def update_module(
    module_id: int,
    module_update: ModuleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Modules", "update")),
):
    """Update a module."""
    db_module = await service.update_module(db, module_id, module_update)
    await db.commit()
    await db.refresh(db_module)
    return ItemResponse[ModuleWithPermissions](
        data=ModuleWithPermissions.model_validate(db_module),
        message="Module updated successfully",
    )


@router.delete("/{module_id}", response_model=ModuleDeleteResponse)
async def delete_module(
    module_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("Modules", "delete")),
):
    """
    Delete a module.

    Rejected with 409 while the module has active permissions.
    """
    result = await service.delete_module(db, module_id)
    await db.commit()
    return ModuleDeleteResponse(
        message="Module deleted successfully",
        deleted_id=result.deleted_id,
        cascaded=result.cascaded,
        deleted_permissions=result.cascaded.get("permissions", 0),
    )
