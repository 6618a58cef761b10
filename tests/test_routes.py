import asyncio

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from iam.core import config
from iam.core.database.engine import enable_sqlite_foreign_keys, get_db, init_db
from iam.features.assignments.service import (
    assign_permissions_to_role,
    assign_roles_to_group,
    assign_users_to_group,
)
from iam.features.groups.models import Group
from iam.features.roles.models import Role
from iam.features.users.models import User
from iam.main import app
from scripts.seed_iam import seed_admin, seed_modules


def _auth(user_id):
    token = jwt.encode({"sub": str(user_id)}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'iam.db'}", poolclass=NullPool)
    enable_sqlite_foreign_keys(engine)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def setup():
        await init_db(bind=engine)
        async with session_factory() as db:
            permissions = await seed_modules(db)
            await seed_admin(db, permissions)
            users_read = next(p for p in permissions if p.name == "Users:read")

            viewer = Role(name="Viewer")
            support = Group(name="Support")
            alice = User(username="alice", email="alice@example.com", password_hash="x")
            mallory = User(username="mallory", email="mallory@example.com", password_hash="x", is_active=False)
            db.add_all([viewer, support, alice, mallory])
            await db.flush()
            await assign_permissions_to_role(db, viewer.id, [users_read.id])
            await assign_roles_to_group(db, support.id, [viewer.id])
            await assign_users_to_group(db, support.id, [alice.id])

            admin_id = (
                await db.execute(select(User.id).where(User.username == config.ADMIN_USERNAME))
            ).scalar_one()
            await db.commit()
            return {
                "admin": admin_id,
                "alice": alice.id,
                "mallory": mallory.id,
                "support": support.id,
                "viewer": viewer.id,
            }

    ids = asyncio.run(setup())

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app), ids
    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())


def test_public_endpoints(api):
    client, _ = api

    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/").json()["status"] == "online"


def test_missing_or_bad_token(api):
    client, _ = api

    assert client.get("/modules").status_code in (401, 403)
    response = client.get("/modules", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_inactive_caller_is_rejected(api):
    client, ids = api

    response = client.get("/me/permissions", headers=_auth(ids["mallory"]))

    assert response.status_code == 403
    assert response.json()["detail"] == "User account is deactivated"


def test_admin_lists_seeded_modules(api):
    client, ids = api

    response = client.get("/modules", headers=_auth(ids["admin"]))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["count"] == 6
    assert {m["name"] for m in body["data"]} == {
        "Users", "Groups", "Roles", "Modules", "Permissions", "Assignments"
    }
    assert len(body["data"][0]["permissions"]) == 4
    assert "isActive" in body["data"][0]


def test_module_and_permission_lifecycle(api):
    client, ids = api
    headers = _auth(ids["admin"])

    created = client.post("/modules", json={"name": "Reports", "description": "Reporting"}, headers=headers)
    assert created.status_code == 201
    module_id = created.json()["data"]["id"]

    permission = client.post(
        "/permissions",
        json={"name": "Reports:read", "action": "read", "moduleId": module_id},
        headers=headers,
    )
    assert permission.status_code == 201
    permission_body = permission.json()["data"]
    assert permission_body["module"] == {"id": module_id, "name": "Reports"}

    duplicate = client.post(
        "/permissions",
        json={"name": "Reports:read again", "action": "read", "moduleId": module_id},
        headers=headers,
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "CONFLICT"

    blocked = client.delete(f"/modules/{module_id}", headers=headers)
    assert blocked.status_code == 409
    assert blocked.json()["details"]["dependents"] == 1

    deactivated = client.put(
        f"/permissions/{permission_body['id']}", json={"isActive": False}, headers=headers
    )
    assert deactivated.json()["data"]["isActive"] is False

    deleted = client.delete(f"/modules/{module_id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["deletedPermissions"] == 1
    assert client.get(f"/modules/{module_id}", headers=headers).status_code == 404


def test_permission_module_change_is_rejected(api):
    client, ids = api
    headers = _auth(ids["admin"])
    permission = client.get("/permissions", params={"search": "Users:read"}, headers=headers).json()["data"][0]
    other_module = client.get("/modules", params={"search": "Groups"}, headers=headers).json()["data"][0]

    response = client.put(
        f"/permissions/{permission['id']}", json={"moduleId": other_module["id"]}, headers=headers
    )

    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_unknown_action_is_a_request_error(api):
    client, ids = api

    response = client.post(
        "/permissions",
        json={"name": "Users:approve", "action": "approve", "moduleId": 1},
        headers=_auth(ids["admin"]),
    )

    assert response.status_code == 400
    assert "action" in response.json()


def test_viewer_is_guarded_per_action(api):
    client, ids = api
    headers = _auth(ids["alice"])

    assert client.get("/users", headers=headers).status_code == 200

    response = client.post("/modules", json={"name": "Billing"}, headers=headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Permission denied: no create permission for Modules"


def test_my_permissions_pages_and_capabilities(api):
    client, ids = api
    headers = _auth(ids["alice"])

    permissions = client.get("/me/permissions", headers=headers).json()
    assert permissions["count"] == 1
    assert permissions["data"][0]["module"]["name"] == "Users"
    assert permissions["data"][0]["sources"] == ["group 'Support' -> role 'Viewer'"]

    assert client.get("/me/pages", headers=headers).json()["data"] == ["/dashboard", "/users"]

    caps = client.get("/me/capabilities", headers=headers).json()["data"]
    assert caps["Users"]["read"] is True
    assert caps["Users"]["delete"] is False
    assert not any(caps["Roles"].values())


def test_check_endpoint(api):
    client, ids = api
    headers = _auth(ids["alice"])

    granted = client.post("/check", json={"moduleName": "Users", "action": "read"}, headers=headers).json()
    denied = client.post("/check", json={"moduleName": "Users", "action": "delete"}, headers=headers).json()

    assert granted["granted"] is True
    assert denied == {"granted": False, "reason": "no delete permission for Users", "sources": []}


def test_simulation_requires_permissions_read(api):
    client, ids = api
    payload = {"userId": ids["alice"], "moduleName": "Users", "action": "delete"}

    assert client.post("/simulate-action", json=payload, headers=_auth(ids["alice"])).status_code == 403

    response = client.post("/simulate-action", json=payload, headers=_auth(ids["admin"]))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["allowed"] is False
    assert data["reason"] == "no delete permission for Users"


def test_group_membership_changes_take_effect(api):
    client, ids = api
    admin = _auth(ids["admin"])
    alice = _auth(ids["alice"])

    removed = client.delete(f"/groups/{ids['support']}/users/{ids['alice']}", headers=admin)
    assert removed.json() == {"success": True, "message": "User removed from group", "removed": True}
    assert client.get("/users", headers=alice).status_code == 403

    added = client.post(f"/groups/{ids['support']}/users", json={"userIds": [ids["alice"]]}, headers=admin)
    assert added.json()["data"] == {"assigned": 1, "skipped": 0}
    assert client.get("/users", headers=alice).status_code == 200


def test_role_delete_conflict_and_group_delete(api):
    client, ids = api
    headers = _auth(ids["admin"])

    conflict = client.delete(f"/roles/{ids['viewer']}", headers=headers)
    assert conflict.status_code == 409

    in_use = client.delete(f"/groups/{ids['support']}", headers=headers)
    assert in_use.status_code == 409
    assert in_use.json()["details"]["dependents"] == 2

    client.delete(f"/groups/{ids['support']}/users/{ids['alice']}", headers=headers)
    client.delete(f"/groups/{ids['support']}/roles/{ids['viewer']}", headers=headers)
    deleted = client.delete(f"/groups/{ids['support']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["cascaded"] == {}
    assert client.delete(f"/roles/{ids['viewer']}", headers=headers).status_code == 200


def test_user_crud_hides_password(api):
    client, ids = api
    headers = _auth(ids["admin"])

    created = client.post(
        "/users",
        json={"username": "heidi", "email": "heidi@example.com", "password": "long-enough", "firstName": "Heidi"},
        headers=headers,
    )
    assert created.status_code == 201
    body = created.json()["data"]
    assert body["firstName"] == "Heidi"
    assert "password" not in body and "passwordHash" not in body

    duplicate = client.post(
        "/users",
        json={"username": "heidi", "email": "other@example.com", "password": "long-enough"},
        headers=headers,
    )
    assert duplicate.status_code == 409

    granted = client.post(f"/users/{body['id']}/permissions", json={"permissionIds": [1, 1]}, headers=headers)
    assert granted.json()["data"] == {"assigned": 1, "skipped": 0}
    again = client.post(f"/users/{body['id']}/permissions", json={"permissionIds": [1]}, headers=headers)
    assert again.json()["data"] == {"assigned": 0, "skipped": 1}


def test_link_routes_are_guarded_by_assignments(api):
    client, ids = api
    headers = _auth(ids["alice"])

    added = client.post(f"/groups/{ids['support']}/users", json={"userIds": [ids["alice"]]}, headers=headers)
    assert added.status_code == 403
    assert added.json()["detail"] == "Permission denied: no create permission for Assignments"

    removed = client.delete(f"/groups/{ids['support']}/users/{ids['alice']}", headers=headers)
    assert removed.status_code == 403
    assert removed.json()["detail"] == "Permission denied: no delete permission for Assignments"


def test_null_required_field_is_a_validation_error(api):
    client, ids = api

    response = client.put(f"/roles/{ids['viewer']}", json={"name": None}, headers=_auth(ids["admin"]))

    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"
    assert response.json()["details"]["field"] == "name"
