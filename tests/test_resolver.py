import pytest
from sqlalchemy.exc import OperationalError

from iam.core.errors import NotFoundError, ResolutionError
from iam.features.access.resolver import DIRECT_GRANT, resolve_effective_permissions
from iam.features.assignments.service import (
    assign_permissions_to_role,
    assign_permissions_to_user,
    assign_roles_to_group,
    assign_users_to_group,
)


pytestmark = pytest.mark.asyncio


async def _support_viewer(factory, db):
    users = await factory.module("Users")
    read = await factory.permission(users, "read")
    delete = await factory.permission(users, "delete")
    viewer = await factory.role("Viewer")
    support = await factory.group("Support")
    alice = await factory.user("alice")
    await assign_permissions_to_role(db, viewer.id, [read.id])
    await assign_roles_to_group(db, support.id, [viewer.id])
    await assign_users_to_group(db, support.id, [alice.id])
    return dict(users=users, read=read, delete=delete, viewer=viewer, support=support, alice=alice)


async def test_group_role_path_grants_only_role_permissions(db, factory):
    s = await _support_viewer(factory, db)

    effective = await resolve_effective_permissions(db, s["alice"].id)

    assert [(p.module_name, p.action) for p in effective] == [("Users", "read")]
    assert effective.permissions[0].sources == ("group 'Support' -> role 'Viewer'",)
    assert effective.subject_active is True


async def test_resolution_is_deterministic(db, factory):
    s = await _support_viewer(factory, db)
    groups = await factory.module("Groups")
    await assign_permissions_to_user(db, s["alice"].id, [(await factory.permission(groups, "update")).id])

    first = await resolve_effective_permissions(db, s["alice"].id)
    second = await resolve_effective_permissions(db, s["alice"].id)

    assert first == second
    assert [(p.module_name, p.action) for p in first] == [("Groups", "update"), ("Users", "read")]


async def test_same_permission_from_two_paths_appears_once(db, factory):
    s = await _support_viewer(factory, db)
    admins = await factory.group("Admins")
    await assign_roles_to_group(db, admins.id, [s["viewer"].id])
    await assign_users_to_group(db, admins.id, [s["alice"].id])
    await assign_permissions_to_user(db, s["alice"].id, [s["read"].id])

    effective = await resolve_effective_permissions(db, s["alice"].id)

    assert len(effective) == 1
    assert effective.permissions[0].sources == (
        DIRECT_GRANT,
        "group 'Admins' -> role 'Viewer'",
        "group 'Support' -> role 'Viewer'",
    )


async def test_direct_grant_without_any_group(db, factory):
    roles = await factory.module("Roles")
    create = await factory.permission(roles, "create")
    bob = await factory.user("bob")
    await assign_permissions_to_user(db, bob.id, [create.id])

    effective = await resolve_effective_permissions(db, bob.id)

    assert effective.keys() == {(roles.id, "create")}
    assert effective.find("Roles", "create").sources == (DIRECT_GRANT,)


@pytest.mark.parametrize("inactive", ["group", "role", "permission", "module"])
async def test_inactive_entity_on_path_drops_permission(db, factory, inactive):
    s = await _support_viewer(factory, db)
    target = {"group": s["support"], "role": s["viewer"], "permission": s["read"], "module": s["users"]}[inactive]
    target.is_active = False
    await db.flush()

    effective = await resolve_effective_permissions(db, s["alice"].id)

    assert len(effective) == 0


async def test_inactive_user_resolves_to_empty_set(db, factory):
    s = await _support_viewer(factory, db)
    s["alice"].is_active = False
    await db.flush()

    effective = await resolve_effective_permissions(db, s["alice"].id)

    assert effective.subject_active is False
    assert len(effective) == 0


async def test_reactivation_restores_permission(db, factory):
    s = await _support_viewer(factory, db)
    s["viewer"].is_active = False
    await db.flush()
    assert len(await resolve_effective_permissions(db, s["alice"].id)) == 0

    s["viewer"].is_active = True
    await db.flush()

    effective = await resolve_effective_permissions(db, s["alice"].id)
    assert effective.find("Users", "read") is not None


async def test_inactive_permission_keeps_direct_path_of_active_duplicate(db, factory):
    users = await factory.module("Users")
    old = await factory.permission(users, "read", is_active=False)
    new = await factory.permission(users, "read")
    carol = await factory.user("carol")
    await assign_permissions_to_user(db, carol.id, [old.id, new.id])

    effective = await resolve_effective_permissions(db, carol.id)

    assert [p.id for p in effective] == [new.id]


async def test_unknown_user_raises_not_found(db):
    with pytest.raises(NotFoundError):
        await resolve_effective_permissions(db, 404)


async def test_store_failure_raises_resolution_error(db, factory, monkeypatch):
    alice = await factory.user("alice")

    async def broken_execute(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "execute", broken_execute)

    with pytest.raises(ResolutionError):
        await resolve_effective_permissions(db, alice.id)
