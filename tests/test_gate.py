import pytest
import pytest_asyncio

from iam.core.errors import NotFoundError, ResolutionError, ValidationError
from iam.features.access import gate
from iam.features.access.gate import RESOLUTION_FAILED, allowed, capabilities
from iam.features.access.pages import PAGE_PERMISSIONS, accessible_pages, has_page_permission
from iam.features.access.resolver import resolve_effective_permissions
from iam.features.access.simulation import simulate_action
from iam.features.assignments.service import (
    assign_permissions_to_role,
    assign_permissions_to_user,
    assign_roles_to_group,
    assign_users_to_group,
)


pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def alice(db, factory):
    users = await factory.module("Users")
    read = await factory.permission(users, "read")
    await factory.permission(users, "delete")
    viewer = await factory.role("Viewer")
    support = await factory.group("Support")
    alice = await factory.user("alice")
    await assign_permissions_to_role(db, viewer.id, [read.id])
    await assign_roles_to_group(db, support.id, [viewer.id])
    await assign_users_to_group(db, support.id, [alice.id])
    return alice


async def test_granted_with_sources(db, alice):
    decision = await allowed(db, alice.id, "Users", "read")

    assert decision
    assert decision.reason is None
    assert decision.sources == ("group 'Support' -> role 'Viewer'",)


async def test_missing_action_is_denied_with_reason(db, alice):
    decision = await allowed(db, alice.id, "Users", "delete")

    assert not decision
    assert decision.reason == "no delete permission for Users"


async def test_action_is_case_insensitive(db, alice):
    assert (await allowed(db, alice.id, "Users", "READ")).granted


async def test_unknown_action_is_rejected(db, alice):
    with pytest.raises(ValidationError):
        await allowed(db, alice.id, "Users", "approve")


async def test_unknown_module_reason(db, alice):
    decision = await allowed(db, alice.id, "Billing", "read")

    assert decision.reason == "module 'Billing' not found"


async def test_inactive_module_reason(db, factory, alice):
    reports = await factory.module("Reports", is_active=False)
    await assign_permissions_to_user(db, alice.id, [(await factory.permission(reports, "read")).id])

    decision = await allowed(db, alice.id, "Reports", "read")

    assert not decision.granted
    assert decision.reason == "module 'Reports' is inactive"


async def test_inactive_user_reason(db, alice):
    alice.is_active = False
    await db.flush()

    decision = await allowed(db, alice.id, "Users", "read")

    assert not decision.granted
    assert decision.reason == "user 'alice' is inactive"


async def test_unknown_subject_raises(db):
    with pytest.raises(NotFoundError):
        await allowed(db, 999, "Users", "read")


async def test_resolution_failure_fails_closed(db, alice, monkeypatch):
    async def failing(*args, **kwargs):
        raise ResolutionError("store unavailable")

    monkeypatch.setattr(gate, "resolve_effective_permissions", failing)

    decision = await allowed(db, alice.id, "Users", "read")

    assert decision.granted is False
    assert decision.reason == RESOLUTION_FAILED


async def test_precomputed_set_is_used(db, alice):
    effective = await resolve_effective_permissions(db, alice.id)

    assert (await allowed(db, alice.id, "Users", "read", effective=effective)).granted
    assert not (await allowed(db, alice.id, "Users", "update", effective=effective)).granted


async def test_capabilities_cover_extra_modules(db, alice):
    effective = await resolve_effective_permissions(db, alice.id)

    caps = capabilities(effective, ["Groups"])

    assert list(caps) == ["Groups", "Users"]
    assert caps["Users"] == {"create": False, "read": True, "update": False, "delete": False}
    assert not any(caps["Groups"].values())


async def test_accessible_pages(db, alice):
    effective = await resolve_effective_permissions(db, alice.id)

    assert accessible_pages(effective) == ["/dashboard", "/users"]
    assert has_page_permission(effective, "/dashboard")
    assert not has_page_permission(effective, "/roles")
    assert not has_page_permission(effective, "/not-a-page")
    assert set(PAGE_PERMISSIONS) >= {"/users", "/groups", "/roles", "/modules", "/permissions"}


async def test_simulation_by_name_and_id(db, alice):
    by_name = await simulate_action(db, alice.id, "read", module_name="Users")
    by_id = await simulate_action(db, alice.id, "read", module_id=by_name.module_id)

    assert by_name.allowed and by_id.allowed
    assert by_id.module_name == "Users"
    assert by_id.justification == ("group 'Support' -> role 'Viewer'",)


async def test_simulation_denial_and_unknown_module(db, alice):
    denied = await simulate_action(db, alice.id, "delete", module_name="Users")
    missing = await simulate_action(db, alice.id, "read", module_id=12345)

    assert denied.allowed is False
    assert denied.reason == "no delete permission for Users"
    assert missing.allowed is False
    assert missing.reason == "module #12345 not found"


async def test_simulation_requires_a_module(db, alice):
    with pytest.raises(ValidationError):
        await simulate_action(db, alice.id, "read")
