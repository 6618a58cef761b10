"""
Permission store.

Enforces the closed action set, the single-active-permission-per
(module, action) rule and the immutability of a permission's module.
"""
from typing import Optional, Tuple, Union

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.database.queries import DEFAULT_LIMIT, apply_filters, get_or_404, paginate, reject_nulls
from iam.core.errors import ConflictError, ValidationError
from iam.core.results import DeleteResult
from iam.features.assignments.models import role_permissions, user_permissions
from iam.features.modules.models import Module
from iam.features.permissions.models import Action, Permission
from iam.features.permissions.schemas import PermissionCreate, PermissionUpdate
from iam.utils import get_logger


log = get_logger(__name__)


def parse_action(value: Union[str, Action]) -> Action:
    """Coerce a user-supplied action, rejecting anything outside the enum."""
    if isinstance(value, Action):
        return value
    try:
        return Action(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(a.value for a in Action)
        raise ValidationError(f"Unknown action '{value}'; expected one of {allowed}", field="action")


async def _ensure_no_active_duplicate(
    db: AsyncSession,
    module: Module,
    action: Action,
    exclude_id: Optional[int] = None,
) -> None:
    stmt = select(Permission.id).where(
        Permission.module_id == module.id,
        Permission.action == action.value,
        Permission.is_active.is_(True),
    )
    if exclude_id is not None:
        stmt = stmt.where(Permission.id != exclude_id)
    existing = (await db.execute(stmt)).scalars().first()
    if existing is not None:
        raise ConflictError(
            f"An active {action.value} permission already exists for module '{module.name}'",
            existing_id=existing,
            module_id=module.id,
            action=action.value,
        )


async def create_permission(db: AsyncSession, payload: PermissionCreate) -> Permission:
    # Lock the module so a concurrent module delete cannot miss this permission
    module = await get_or_404(db, Module, payload.module_id, "module", for_update=True)
    action = parse_action(payload.action)
    module_name = module.name
    if payload.is_active:
        await _ensure_no_active_duplicate(db, module, action)

    permission = Permission(
        name=payload.name,
        description=payload.description,
        action=action.value,
        module_id=module.id,
        is_active=payload.is_active,
    )
    db.add(permission)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError(
            f"An active {action.value} permission already exists for module '{module_name}'",
            module_id=payload.module_id,
            action=action.value,
        ) from exc

    await db.refresh(permission, attribute_names=["module"])
    log.info(
        "Audit: created permission id=%s module=%r action=%s",
        permission.id, module_name, action.value,
    )
    return permission


async def get_permission(db: AsyncSession, permission_id: int) -> Permission:
    return await get_or_404(db, Permission, permission_id, "permission")


async def list_permissions(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    module_id: Optional[int] = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Tuple[list[Permission], int]:
    stmt = apply_filters(
        select(Permission),
        Permission,
        search=search,
        is_active=is_active,
        search_columns=[Permission.name, Permission.description],
    )
    if module_id is not None:
        stmt = stmt.where(Permission.module_id == module_id)
    return await paginate(db, stmt, Permission, limit=limit, offset=offset)


async def update_permission(db: AsyncSession, permission_id: int, payload: PermissionUpdate) -> Permission:
    permission = await get_or_404(db, Permission, permission_id, "permission", for_update=True)

    update_data = reject_nulls(payload.model_dump(exclude_unset=True), "name", "action", "is_active")
    new_module_id = update_data.pop("module_id", None)
    if new_module_id is not None and new_module_id != permission.module_id:
        raise ValidationError(
            "The module of a permission cannot be changed; delete and recreate it instead",
            field="moduleId",
        )

    if "action" in update_data:
        update_data["action"] = parse_action(update_data["action"]).value

    will_be_active = update_data.get("is_active", permission.is_active)
    action_changes = update_data.get("action", permission.action) != permission.action
    activates = will_be_active and not permission.is_active
    if will_be_active and (action_changes or activates):
        module = await get_or_404(db, Module, permission.module_id, "module", for_update=True)
        await _ensure_no_active_duplicate(
            db, module, Action(update_data.get("action", permission.action)), exclude_id=permission_id
        )

    module_id = permission.module_id
    action = update_data.get("action", permission.action)
    for key, value in update_data.items():
        setattr(permission, key, value)

    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError(
            "Another active permission already covers this module and action",
            module_id=module_id,
            action=action,
        ) from exc

    log.info("Audit: updated permission id=%s fields=%s", permission_id, sorted(update_data))
    return permission


async def delete_permission(db: AsyncSession, permission_id: int) -> DeleteResult:
    """Delete a permission together with every role and user grant of it."""
    await get_or_404(db, Permission, permission_id, "permission", for_update=True)

    role_links = await db.execute(
        delete(role_permissions).where(role_permissions.c.permission_id == permission_id)
    )
    user_links = await db.execute(
        delete(user_permissions).where(user_permissions.c.permission_id == permission_id)
    )
    await db.execute(delete(Permission).where(Permission.id == permission_id))

    cascaded = {"role_permissions": role_links.rowcount, "user_permissions": user_links.rowcount}
    log.info("Audit: deleted permission id=%s cascaded=%s", permission_id, cascaded)
    return DeleteResult(deleted_id=permission_id, cascaded=cascaded)
