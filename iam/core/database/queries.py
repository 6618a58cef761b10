"""
Small query helpers shared by the feature services.
"""
from typing import Any, Dict, Optional, Sequence, Tuple, Type, TypeVar

from pydantic.alias_generators import to_camel
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from iam.core.errors import NotFoundError, ValidationError

ModelT = TypeVar("ModelT")

DEFAULT_LIMIT = 1000


async def get_or_404(
    db: AsyncSession,
    model: Type[ModelT],
    entity_id: int,
    entity: str,
    *,
    for_update: bool = False,
) -> ModelT:
    """
    Fetch a row by primary key or raise NotFoundError.

    Always goes to the database (no identity-map shortcut) so rows removed by
    bulk deletes in the same session are reported as missing. With
    ``for_update`` the row is locked until the transaction ends.
    """
    stmt = select(model).where(model.id == entity_id).execution_options(populate_existing=True)  # type: ignore[attr-defined]
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    instance = result.unique().scalar_one_or_none()
    if instance is None:
        raise NotFoundError(entity, entity_id)
    return instance


def apply_filters(
    stmt: Select,
    model: Any,
    *,
    search: Optional[str],
    is_active: Optional[bool],
    search_columns: Sequence[InstrumentedAttribute],
) -> Select:
    """
    Case-insensitive substring search plus the optional activity filter.

    ``%`` and ``_`` in the search term match literally.
    """
    if search:
        term = search.strip()
        stmt = stmt.where(or_(*(col.icontains(term, autoescape=True) for col in search_columns)))
    if is_active is not None:
        stmt = stmt.where(model.is_active == is_active)
    return stmt


async def paginate(
    db: AsyncSession,
    stmt: Select,
    model: Any,
    *,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Tuple[list, int]:
    """Return one page of rows ordered by id, plus the unpaged total."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    page_stmt = stmt.order_by(model.id).offset(offset).limit(limit)
    result = await db.execute(page_stmt)
    return list(result.unique().scalars().all()), total


async def existing_ids(db: AsyncSession, model: Any, ids: Sequence[int]) -> set[int]:
    result = await db.execute(select(model.id).where(model.id.in_(ids)))
    return set(result.scalars().all())


def reject_nulls(update_data: Dict[str, Any], *fields: str) -> Dict[str, Any]:
    """Partial updates may omit these fields but not set them to null."""
    for field in fields:
        if field in update_data and update_data[field] is None:
            raise ValidationError(f"{to_camel(field)} cannot be null", field=to_camel(field))
    return update_data
