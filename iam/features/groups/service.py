"""
Group store.
"""
from typing import Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.database.queries import DEFAULT_LIMIT, apply_filters, get_or_404, paginate, reject_nulls
from iam.core.errors import ConflictError
from iam.core.results import DeleteResult
from iam.features.assignments.models import group_roles, user_groups
from iam.features.groups.models import Group
from iam.features.groups.schemas import GroupCreate, GroupUpdate
from iam.utils import get_logger


log = get_logger(__name__)


async def create_group(db: AsyncSession, payload: GroupCreate) -> Group:
    group = Group(**payload.model_dump())
    db.add(group)
    await db.flush()
    log.info("Audit: created group id=%s name=%r", group.id, group.name)
    return group


async def get_group(db: AsyncSession, group_id: int) -> Group:
    return await get_or_404(db, Group, group_id, "group")


async def list_groups(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Tuple[list[Group], int]:
    stmt = apply_filters(
        select(Group),
        Group,
        search=search,
        is_active=is_active,
        search_columns=[Group.name, Group.description],
    )
    return await paginate(db, stmt, Group, limit=limit, offset=offset)


async def update_group(db: AsyncSession, group_id: int, payload: GroupUpdate) -> Group:
    group = await get_or_404(db, Group, group_id, "group", for_update=True)

    update_data = reject_nulls(payload.model_dump(exclude_unset=True), "name", "is_active")
    for key, value in update_data.items():
        setattr(group, key, value)
    await db.flush()

    log.info("Audit: updated group id=%s fields=%s", group_id, sorted(update_data))
    return group


async def delete_group(db: AsyncSession, group_id: int) -> DeleteResult:
    """
    Delete a group with no members and no role grants.

    A group still in use is rejected with the number of links, so neither
    memberships nor grants disappear as a side effect.
    """
    group = await get_or_404(db, Group, group_id, "group", for_update=True)

    members = (
        await db.execute(
            select(func.count()).select_from(user_groups).where(user_groups.c.group_id == group_id)
        )
    ).scalar() or 0
    grants = (
        await db.execute(
            select(func.count()).select_from(group_roles).where(group_roles.c.group_id == group_id)
        )
    ).scalar() or 0
    if members or grants:
        raise ConflictError(
            f"Cannot delete group '{group.name}' while it has {members} member(s) "
            f"and {grants} role grant(s)",
            dependents=members + grants,
            entity="group",
            id=group_id,
            members=members,
            roles=grants,
        )

    await db.execute(delete(Group).where(Group.id == group_id))

    log.info("Audit: deleted group id=%s", group_id)
    return DeleteResult(deleted_id=group_id)
