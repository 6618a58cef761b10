"""
Effective permission resolution.

A user's effective permissions are the union of

* every permission of every role of every group the user belongs to, and
* every permission granted to the user directly,

where a path only counts if each entity on it (user, group, role,
permission and the permission's module) is active. Both paths are read by
one UNION statement, so a resolution always sees a single consistent
snapshot of the assignment graph.
"""
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy import String, literal, select, union_all
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.errors import NotFoundError, ResolutionError
from iam.features.assignments.models import group_roles, role_permissions, user_groups, user_permissions
from iam.features.groups.models import Group
from iam.features.modules.models import Module
from iam.features.permissions.models import Permission
from iam.features.roles.models import Role
from iam.features.users.models import User
from iam.utils import get_logger


log = get_logger(__name__)

DIRECT_GRANT = "direct grant"


@dataclass(frozen=True)
class ModuleRef:
    id: int
    name: str


@dataclass(frozen=True)
class ResolvedPermission:
    id: int
    name: str
    description: Optional[str]
    action: str
    module_id: int
    module_name: str
    # Human-readable paths that grant this permission
    sources: Tuple[str, ...]
    is_active: bool = True

    @property
    def key(self) -> Tuple[int, str]:
        return (self.module_id, self.action)

    @property
    def module(self) -> ModuleRef:
        return ModuleRef(id=self.module_id, name=self.module_name)


@dataclass(frozen=True)
class EffectivePermissions:
    user_id: int
    username: str
    subject_active: bool
    permissions: Tuple[ResolvedPermission, ...] = ()

    def __iter__(self) -> Iterator[ResolvedPermission]:
        return iter(self.permissions)

    def __len__(self) -> int:
        return len(self.permissions)

    def keys(self) -> frozenset:
        return frozenset(p.key for p in self.permissions)

    def find(self, module_name: str, action: str) -> Optional[ResolvedPermission]:
        for permission in self.permissions:
            if permission.module_name == module_name and permission.action == action:
                return permission
        return None

    def module_names(self) -> List[str]:
        return sorted({p.module_name for p in self.permissions})


def _source_label(group_name: Optional[str], role_name: Optional[str]) -> str:
    if group_name is None:
        return DIRECT_GRANT
    return f"group '{group_name}' -> role '{role_name}'"


def _grant_paths(user_id: int):
    columns = (
        Permission.id.label("permission_id"),
        Permission.name.label("permission_name"),
        Permission.description.label("description"),
        Permission.action.label("action"),
        Permission.module_id.label("module_id"),
        Module.name.label("module_name"),
    )

    via_groups = (
        select(*columns, Group.name.label("group_name"), Role.name.label("role_name"))
        .select_from(user_groups)
        .join(User, User.id == user_groups.c.user_id)
        .join(Group, Group.id == user_groups.c.group_id)
        .join(group_roles, group_roles.c.group_id == Group.id)
        .join(Role, Role.id == group_roles.c.role_id)
        .join(role_permissions, role_permissions.c.role_id == Role.id)
        .join(Permission, Permission.id == role_permissions.c.permission_id)
        .join(Module, Module.id == Permission.module_id)
        .where(
            user_groups.c.user_id == user_id,
            User.is_active.is_(True),
            Group.is_active.is_(True),
            Role.is_active.is_(True),
            Permission.is_active.is_(True),
            Module.is_active.is_(True),
        )
    )

    direct = (
        select(
            *columns,
            literal(None, String).label("group_name"),
            literal(None, String).label("role_name"),
        )
        .select_from(user_permissions)
        .join(User, User.id == user_permissions.c.user_id)
        .join(Permission, Permission.id == user_permissions.c.permission_id)
        .join(Module, Module.id == Permission.module_id)
        .where(
            user_permissions.c.user_id == user_id,
            User.is_active.is_(True),
            Permission.is_active.is_(True),
            Module.is_active.is_(True),
        )
    )

    return union_all(via_groups, direct)


async def resolve_effective_permissions(db: AsyncSession, user_id: int) -> EffectivePermissions:
    """
    Compute the effective permission set of a user.

    Raises:
        NotFoundError: the user does not exist
        ResolutionError: the store failed; no partial result is returned
    """
    try:
        result = await db.execute(select(User.id, User.username, User.is_active).where(User.id == user_id))
        subject = result.first()
        if subject is None:
            raise NotFoundError("user", user_id)

        if not subject.is_active:
            return EffectivePermissions(user_id=user_id, username=subject.username, subject_active=False)

        rows = (await db.execute(_grant_paths(user_id))).all()
    except SQLAlchemyError as exc:
        log.exception("Permission resolution failed for user %s", user_id)
        raise ResolutionError(
            f"Could not resolve permissions for user {user_id}",
            details={"user_id": user_id},
        ) from exc

    # Collapse rows by (module_id, action); the lowest permission id is kept
    # when two records cover the same pair, and all their sources are merged.
    canonical: Dict[Tuple[int, str], dict] = {}
    sources: Dict[Tuple[int, str], set] = {}
    for row in sorted(rows, key=lambda r: r.permission_id):
        key = (row.module_id, row.action)
        canonical.setdefault(key, dict(row._mapping))
        sources.setdefault(key, set()).add(_source_label(row.group_name, row.role_name))

    permissions = tuple(
        sorted(
            (
                ResolvedPermission(
                    id=row["permission_id"],
                    name=row["permission_name"],
                    description=row["description"],
                    action=row["action"],
                    module_id=row["module_id"],
                    module_name=row["module_name"],
                    sources=tuple(sorted(sources[key])),
                )
                for key, row in canonical.items()
            ),
            key=lambda p: (p.module_name, p.action),
        )
    )
    log.debug("Resolved %d permission(s) for user %s", len(permissions), user_id)
    return EffectivePermissions(
        user_id=user_id,
        username=subject.username,
        subject_active=True,
        permissions=permissions,
    )
