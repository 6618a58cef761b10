import pytest
from sqlalchemy import func, select

from iam.core import config
from iam.features.access.gate import allowed
from iam.features.assignments.models import role_permissions
from iam.features.modules.models import Module
from iam.features.permissions.models import Permission
from iam.features.users.models import User
from scripts.seed_iam import DEFAULT_MODULES, seed_admin, seed_modules


pytestmark = pytest.mark.asyncio


async def _count(db, selectable):
    return (await db.execute(select(func.count()).select_from(selectable))).scalar()


async def test_seed_is_idempotent(db):
    for _ in range(2):
        permissions = await seed_modules(db)
        await seed_admin(db, permissions)

    assert await _count(db, Module) == len(DEFAULT_MODULES)
    assert await _count(db, Permission) == len(DEFAULT_MODULES) * 4
    assert await _count(db, role_permissions) == len(DEFAULT_MODULES) * 4
    assert await _count(db, User) == 1


async def test_seeded_admin_can_do_everything(db):
    await seed_admin(db, await seed_modules(db))
    admin_id = (await db.execute(select(User.id).where(User.username == config.ADMIN_USERNAME))).scalar_one()

    for name, _ in DEFAULT_MODULES:
        for action in ("create", "read", "update", "delete"):
            assert (await allowed(db, admin_id, name, action)).granted
