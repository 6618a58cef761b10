"""
Assignment graph operations.

Assignments are set unions and removals are idempotent: re-assigning an
existing link is counted as skipped, and removing an absent link succeeds
without removing anything. Both ends of a link must exist, but either may
be inactive; activity only matters at resolution time.

Each operation locks its parent row first, so concurrent assignments to
the same group or role are serialized.
"""
from typing import Any, Iterable

from sqlalchemy import Table, delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.database.queries import existing_ids, get_or_404
from iam.core.errors import ConflictError, NotFoundError, ValidationError
from iam.core.results import AssignmentResult, RemovalResult
from iam.features.assignments.models import group_roles, role_permissions, user_groups, user_permissions
from iam.features.groups.models import Group
from iam.features.permissions.models import Permission
from iam.features.roles.models import Role
from iam.features.users.models import User
from iam.utils import get_logger


log = get_logger(__name__)


async def _assign(
    db: AsyncSession,
    table: Table,
    *,
    parent_model: Any,
    parent_key: str,
    parent_id: int,
    child_model: Any,
    child_key: str,
    child_ids: Iterable[int],
) -> AssignmentResult:
    requested = list(dict.fromkeys(child_ids))
    if not requested:
        raise ValidationError(f"At least one {child_key.removesuffix('_id')} id is required", field=child_key)

    parent_entity = parent_key.removesuffix("_id")
    child_entity = child_key.removesuffix("_id")
    await get_or_404(db, parent_model, parent_id, parent_entity, for_update=True)

    missing = set(requested) - await existing_ids(db, child_model, requested)
    if missing:
        raise NotFoundError(child_entity, missing=missing)

    parent_col = table.c[parent_key]
    child_col = table.c[child_key]
    present = set(
        (
            await db.execute(
                select(child_col).where(parent_col == parent_id, child_col.in_(requested))
            )
        ).scalars().all()
    )
    new_ids = [child_id for child_id in requested if child_id not in present]

    if new_ids:
        try:
            await db.execute(
                insert(table),
                [{parent_key: parent_id, child_key: child_id} for child_id in new_ids],
            )
        except IntegrityError as exc:
            raise ConflictError(
                f"{table.name} changed while assigning; retry the request",
                table=table.name,
                parent_id=parent_id,
            ) from exc

    result = AssignmentResult(assigned=len(new_ids), skipped=len(requested) - len(new_ids))
    log.info(
        "Audit: assign %s %s=%s %s=%s assigned=%s skipped=%s",
        table.name, parent_key, parent_id, child_key, new_ids, result.assigned, result.skipped,
    )
    return result


async def _remove(
    db: AsyncSession,
    table: Table,
    *,
    parent_model: Any,
    parent_key: str,
    parent_id: int,
    child_model: Any,
    child_key: str,
    child_id: int,
) -> RemovalResult:
    await get_or_404(db, parent_model, parent_id, parent_key.removesuffix("_id"), for_update=True)
    await get_or_404(db, child_model, child_id, child_key.removesuffix("_id"))

    result = await db.execute(
        delete(table).where(table.c[parent_key] == parent_id, table.c[child_key] == child_id)
    )
    removed = result.rowcount > 0
    log.info(
        "Audit: remove %s %s=%s %s=%s removed=%s",
        table.name, parent_key, parent_id, child_key, child_id, removed,
    )
    return RemovalResult(removed=removed)


async def assign_users_to_group(db: AsyncSession, group_id: int, user_ids: Iterable[int]) -> AssignmentResult:
    return await _assign(
        db, user_groups,
        parent_model=Group, parent_key="group_id", parent_id=group_id,
        child_model=User, child_key="user_id", child_ids=user_ids,
    )


async def assign_roles_to_group(db: AsyncSession, group_id: int, role_ids: Iterable[int]) -> AssignmentResult:
    return await _assign(
        db, group_roles,
        parent_model=Group, parent_key="group_id", parent_id=group_id,
        child_model=Role, child_key="role_id", child_ids=role_ids,
    )


async def assign_permissions_to_role(
    db: AsyncSession, role_id: int, permission_ids: Iterable[int]
) -> AssignmentResult:
    return await _assign(
        db, role_permissions,
        parent_model=Role, parent_key="role_id", parent_id=role_id,
        child_model=Permission, child_key="permission_id", child_ids=permission_ids,
    )


async def assign_permissions_to_user(
    db: AsyncSession, user_id: int, permission_ids: Iterable[int]
) -> AssignmentResult:
    return await _assign(
        db, user_permissions,
        parent_model=User, parent_key="user_id", parent_id=user_id,
        child_model=Permission, child_key="permission_id", child_ids=permission_ids,
    )


async def remove_user_from_group(db: AsyncSession, group_id: int, user_id: int) -> RemovalResult:
    return await _remove(
        db, user_groups,
        parent_model=Group, parent_key="group_id", parent_id=group_id,
        child_model=User, child_key="user_id", child_id=user_id,
    )


async def remove_role_from_group(db: AsyncSession, group_id: int, role_id: int) -> RemovalResult:
    return await _remove(
        db, group_roles,
        parent_model=Group, parent_key="group_id", parent_id=group_id,
        child_model=Role, child_key="role_id", child_id=role_id,
    )


async def remove_permission_from_role(db: AsyncSession, role_id: int, permission_id: int) -> RemovalResult:
    return await _remove(
        db, role_permissions,
        parent_model=Role, parent_key="role_id", parent_id=role_id,
        child_model=Permission, child_key="permission_id", child_id=permission_id,
    )


async def remove_permission_from_user(db: AsyncSession, user_id: int, permission_id: int) -> RemovalResult:
    return await _remove(
        db, user_permissions,
        parent_model=User, parent_key="user_id", parent_id=user_id,
        child_model=Permission, child_key="permission_id", child_id=permission_id,
    )
