"""
User store.
"""
from typing import Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.database.queries import DEFAULT_LIMIT, apply_filters, get_or_404, paginate, reject_nulls
from iam.core.errors import ConflictError
from iam.core.results import DeleteResult
from iam.features.assignments.models import user_groups, user_permissions
from iam.features.users.models import User
from iam.features.users.passwords import hash_password
from iam.features.users.schemas import UserCreate, UserUpdate
from iam.utils import get_logger


log = get_logger(__name__)


async def _ensure_unique(
    db: AsyncSession,
    *,
    username: Optional[str] = None,
    email: Optional[str] = None,
    exclude_id: Optional[int] = None,
) -> None:
    for field, column, value in (("username", User.username, username), ("email", User.email, email)):
        if value is None:
            continue
        stmt = select(User.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        if (await db.execute(stmt)).first():
            raise ConflictError(f"User with this {field} already exists", field=field)


async def create_user(db: AsyncSession, payload: UserCreate) -> User:
    await _ensure_unique(db, username=payload.username, email=payload.email)

    data = payload.model_dump(exclude={"password"})
    user = User(**data, password_hash=hash_password(payload.password))
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError("User with this username or email already exists") from exc

    log.info("Audit: created user id=%s username=%r", user.id, user.username)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    return await get_or_404(db, User, user_id, "user")


async def list_users(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Tuple[list[User], int]:
    stmt = apply_filters(
        select(User),
        User,
        search=search,
        is_active=is_active,
        search_columns=[User.username, User.email, User.first_name, User.last_name],
    )
    return await paginate(db, stmt, User, limit=limit, offset=offset)


async def update_user(db: AsyncSession, user_id: int, payload: UserUpdate) -> User:
    user = await get_or_404(db, User, user_id, "user", for_update=True)

    update_data = reject_nulls(
        payload.model_dump(exclude_unset=True), "username", "email", "password", "is_active"
    )
    await _ensure_unique(
        db,
        username=update_data.get("username") if update_data.get("username") != user.username else None,
        email=update_data.get("email") if update_data.get("email") != user.email else None,
        exclude_id=user_id,
    )

    password = update_data.pop("password", None)
    if password:
        user.password_hash = hash_password(password)
    for key, value in update_data.items():
        setattr(user, key, value)

    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError("User with this username or email already exists") from exc

    # Never log the password itself
    log.info("Audit: updated user id=%s fields=%s", user_id, sorted(update_data) + (["password"] if password else []))
    return user


async def delete_user(db: AsyncSession, user_id: int) -> DeleteResult:
    """Delete a user along with their group memberships and direct grants."""
    await get_or_404(db, User, user_id, "user", for_update=True)

    memberships = await db.execute(delete(user_groups).where(user_groups.c.user_id == user_id))
    grants = await db.execute(delete(user_permissions).where(user_permissions.c.user_id == user_id))
    await db.execute(delete(User).where(User.id == user_id))

    cascaded = {"user_groups": memberships.rowcount, "user_permissions": grants.rowcount}
    log.info("Audit: deleted user id=%s cascaded=%s", user_id, cascaded)
    return DeleteResult(deleted_id=user_id, cascaded=cascaded)
