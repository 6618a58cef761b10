import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from iam.core.database.engine import enable_sqlite_foreign_keys, init_db
from iam.features.groups.models import Group
from iam.features.modules.models import Module
from iam.features.permissions.models import Permission
from iam.features.roles.models import Role
from iam.features.users.models import User


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


class Factory:
    """Creates rows directly, bypassing the services under test."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _add(self, obj):
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def module(self, name, *, is_active=True):
        return await self._add(Module(name=name, is_active=is_active))

    async def permission(self, module, action, *, is_active=True):
        return await self._add(
            Permission(
                name=f"{module.name}:{action}",
                action=action,
                module_id=module.id,
                is_active=is_active,
            )
        )

    async def role(self, name, *, is_active=True):
        return await self._add(Role(name=name, is_active=is_active))

    async def group(self, name, *, is_active=True):
        return await self._add(Group(name=name, is_active=is_active))

    async def user(self, username, *, is_active=True):
        return await self._add(
            User(
                username=username,
                email=f"{username}@example.com",
                password_hash="x",
                is_active=is_active,
            )
        )


@pytest.fixture
def factory(db):
    return Factory(db)
