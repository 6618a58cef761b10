"""
Seed script to populate the built-in IAM modules and an administrator.

Run this script after database initialization to create:
- The built-in modules (Users, Groups, Roles, Modules, Permissions, Assignments)
- A create/read/update/delete permission for each of them
- An ``Administrator`` role holding every built-in permission
- An ``Administrators`` group granted that role
- The initial admin user, as a member of that group

Running it again only fills in what is missing.

Usage:
    ADMIN_PASSWORD=... python -m scripts.seed_iam
"""
import asyncio
import secrets
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core import config
from iam.core.database.engine import AsyncSessionLocal, init_db
from iam.features.assignments.service import (
    assign_permissions_to_role,
    assign_roles_to_group,
    assign_users_to_group,
)
from iam.features.groups.models import Group
from iam.features.modules.models import Module
from iam.features.permissions.models import Action, Permission
from iam.features.roles.models import Role
from iam.features.users.models import User
from iam.features.users.passwords import hash_password
from iam.utils import get_logger


log = get_logger(__name__)


DEFAULT_MODULES = [
    ("Users", "User accounts"),
    ("Groups", "Groups of users"),
    ("Roles", "Named bundles of permissions"),
    ("Modules", "Protected resource areas"),
    ("Permissions", "Actions allowed on modules"),
    ("Assignments", "Links between users, groups, roles and permissions"),
]

ADMIN_ROLE = ("Administrator", "Full access to the IAM console")
ADMIN_GROUP = ("Administrators", "Members hold the Administrator role")


async def seed_modules(db: AsyncSession) -> list[Permission]:
    """
    Create the built-in modules and their CRUD permissions.

    Returns:
        The active permission for every (module, action) pair
    """
    permissions = []
    for name, description in DEFAULT_MODULES:
        result = await db.execute(select(Module).where(Module.name == name))
        module = result.scalar_one_or_none()
        if module is None:
            module = Module(name=name, description=description)
            db.add(module)
            await db.flush()
            log.info("Created module: %s", name)

        for action in Action:
            result = await db.execute(
                select(Permission).where(
                    Permission.module_id == module.id,
                    Permission.action == action.value,
                    Permission.is_active.is_(True),
                )
            )
            permission = result.scalar_one_or_none()
            if permission is None:
                permission = Permission(
                    name=f"{name}:{action.value}",
                    description=f"{action.value.capitalize()} {name.lower()}",
                    action=action.value,
                    module_id=module.id,
                )
                db.add(permission)
                await db.flush()
                log.info("Created permission: %s", permission.name)
            permissions.append(permission)
    return permissions


async def _get_or_create(db: AsyncSession, model, name: str, description: str):
    result = await db.execute(select(model).where(model.name == name).order_by(model.id))
    obj = result.scalars().first()
    if obj is None:
        obj = model(name=name, description=description)
        db.add(obj)
        await db.flush()
        log.info("Created %s: %s", model.__tablename__.rstrip("s"), name)
    return obj


async def seed_admin(db: AsyncSession, permissions: list[Permission]) -> None:
    """Create the administrator role, group and user and link them."""
    role = await _get_or_create(db, Role, *ADMIN_ROLE)
    group = await _get_or_create(db, Group, *ADMIN_GROUP)

    result = await db.execute(select(User).where(User.username == config.ADMIN_USERNAME))
    admin = result.scalar_one_or_none()
    if admin is None:
        password = config.ADMIN_PASSWORD
        if not password:
            password = secrets.token_urlsafe(16)
            log.warning("ADMIN_PASSWORD not set; generated password for %s: %s", config.ADMIN_USERNAME, password)
        admin = User(
            username=config.ADMIN_USERNAME,
            email=config.ADMIN_EMAIL,
            password_hash=hash_password(password),
        )
        db.add(admin)
        await db.flush()
        log.info("Created admin user: %s (id=%s)", admin.username, admin.id)

    granted = await assign_permissions_to_role(db, role.id, [p.id for p in permissions])
    await assign_roles_to_group(db, group.id, [role.id])
    await assign_users_to_group(db, group.id, [admin.id])
    log.info("Administrator role holds %s new permission(s)", granted.assigned)


async def main():
    """Main function to seed the IAM tables."""
    log.info("Starting IAM seeding...")

    # Initialize database tables first
    log.info("Initializing database tables...")
    await init_db()

    async with AsyncSessionLocal() as db:
        try:
            permissions = await seed_modules(db)
            await seed_admin(db, permissions)
            await db.commit()
        except Exception:
            log.error("Error seeding IAM tables", exc_info=True)
            await db.rollback()
            raise

    log.info("IAM seeding completed successfully")


if __name__ == "__main__":
    asyncio.run(main())
