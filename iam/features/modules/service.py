"""
Module store: CRUD plus the guarded delete.
"""
from typing import Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.database.queries import DEFAULT_LIMIT, apply_filters, get_or_404, paginate, reject_nulls
from iam.core.errors import ConflictError
from iam.core.results import DeleteResult
from iam.features.assignments.models import role_permissions, user_permissions
from iam.features.modules.models import Module
from iam.features.modules.schemas import ModuleCreate, ModuleUpdate
from iam.features.permissions.models import Permission
from iam.utils import get_logger


log = get_logger(__name__)


async def _ensure_name_available(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> None:
    stmt = select(Module.id).where(Module.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Module.id != exclude_id)
    if (await db.execute(stmt)).first():
        raise ConflictError(f"Module with name '{name}' already exists", field="name")


async def create_module(db: AsyncSession, payload: ModuleCreate) -> Module:
    await _ensure_name_available(db, payload.name)

    module = Module(**payload.model_dump())
    db.add(module)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError(f"Module with name '{payload.name}' already exists", field="name") from exc

    log.info("Audit: created module id=%s name=%r", module.id, module.name)
    return module


async def get_module(db: AsyncSession, module_id: int) -> Module:
    return await get_or_404(db, Module, module_id, "module")


async def list_modules(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Tuple[list[Module], int]:
    stmt = apply_filters(
        select(Module),
        Module,
        search=search,
        is_active=is_active,
        search_columns=[Module.name, Module.description],
    )
    return await paginate(db, stmt, Module, limit=limit, offset=offset)


async def update_module(db: AsyncSession, module_id: int, payload: ModuleUpdate) -> Module:
    module = await get_or_404(db, Module, module_id, "module", for_update=True)
    module_name = module.name

    update_data = reject_nulls(payload.model_dump(exclude_unset=True), "name", "is_active")
    if "name" in update_data and update_data["name"] != module.name:
        await _ensure_name_available(db, update_data["name"], exclude_id=module_id)

    for key, value in update_data.items():
        setattr(module, key, value)

    try:
        await db.flush()
    except IntegrityError as exc:
        name = update_data.get("name", module_name)
        raise ConflictError(f"Module with name '{name}' already exists", field="name") from exc

    log.info("Audit: updated module id=%s fields=%s", module_id, sorted(update_data))
    return module


async def delete_module(db: AsyncSession, module_id: int) -> DeleteResult:
    """
    Delete a module that has no active permissions.

    The module row stays locked from the dependents count to the delete, and
    permission creation takes the same lock, so no permission can appear in
    between. Inactive permissions and their role/user links go with the module.
    """
    module = await get_or_404(db, Module, module_id, "module", for_update=True)
    module_name = module.name

    active_count = (
        await db.execute(
            select(func.count())
            .select_from(Permission)
            .where(Permission.module_id == module_id, Permission.is_active.is_(True))
        )
    ).scalar() or 0
    if active_count:
        raise ConflictError(
            f"Cannot delete module '{module_name}' with existing permissions; "
            f"delete its {active_count} active permission(s) first",
            dependents=active_count,
            entity="module",
            id=module_id,
        )

    permission_ids = select(Permission.id).where(Permission.module_id == module_id)
    role_links = await db.execute(
        delete(role_permissions).where(role_permissions.c.permission_id.in_(permission_ids))
    )
    user_links = await db.execute(
        delete(user_permissions).where(user_permissions.c.permission_id.in_(permission_ids))
    )
    permissions = await db.execute(
        delete(Permission).where(Permission.module_id == module_id)
    )
    await db.execute(delete(Module).where(Module.id == module_id))

    cascaded = {
        "permissions": permissions.rowcount,
        "role_permissions": role_links.rowcount,
        "user_permissions": user_links.rowcount,
    }
    log.info("Audit: deleted module id=%s name=%r cascaded=%s", module_id, module_name, cascaded)
    return DeleteResult(deleted_id=module_id, cascaded=cascaded)
