"""
Role store.
"""
from typing import Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.database.queries import DEFAULT_LIMIT, apply_filters, get_or_404, paginate, reject_nulls
from iam.core.errors import ConflictError
from iam.core.results import DeleteResult
from iam.features.assignments.models import group_roles, role_permissions
from iam.features.roles.models import Role
from iam.features.roles.schemas import RoleCreate, RoleUpdate
from iam.utils import get_logger


log = get_logger(__name__)


async def create_role(db: AsyncSession, payload: RoleCreate) -> Role:
    role = Role(**payload.model_dump())
    db.add(role)
    await db.flush()
    log.info("Audit: created role id=%s name=%r", role.id, role.name)
    return role


async def get_role(db: AsyncSession, role_id: int) -> Role:
    return await get_or_404(db, Role, role_id, "role")


async def list_roles(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Tuple[list[Role], int]:
    stmt = apply_filters(
        select(Role),
        Role,
        search=search,
        is_active=is_active,
        search_columns=[Role.name, Role.description],
    )
    return await paginate(db, stmt, Role, limit=limit, offset=offset)


async def update_role(db: AsyncSession, role_id: int, payload: RoleUpdate) -> Role:
    role = await get_or_404(db, Role, role_id, "role", for_update=True)

    update_data = reject_nulls(payload.model_dump(exclude_unset=True), "name", "is_active")
    for key, value in update_data.items():
        setattr(role, key, value)
    await db.flush()

    log.info("Audit: updated role id=%s fields=%s", role_id, sorted(update_data))
    return role


async def delete_role(db: AsyncSession, role_id: int) -> DeleteResult:
    """
    Delete a role no group grants.

    A role still held by groups is rejected with the number of groups, so
    members never lose permissions as a side effect. The role's own
    permission links are removed with it.
    """
    role = await get_or_404(db, Role, role_id, "role", for_update=True)

    group_count = (
        await db.execute(
            select(func.count()).select_from(group_roles).where(group_roles.c.role_id == role_id)
        )
    ).scalar() or 0
    if group_count:
        raise ConflictError(
            f"Cannot delete role '{role.name}' while it is granted to {group_count} group(s)",
            dependents=group_count,
            entity="role",
            id=role_id,
        )

    links = await db.execute(delete(role_permissions).where(role_permissions.c.role_id == role_id))
    await db.execute(delete(Role).where(Role.id == role_id))

    cascaded = {"role_permissions": links.rowcount}
    log.info("Audit: deleted role id=%s cascaded=%s", role_id, cascaded)
    return DeleteResult(deleted_id=role_id, cascaded=cascaded)
