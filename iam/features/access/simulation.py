"""
What-if permission checks for administrators.

A simulation runs the same gate as a real request, for any subject, and
never changes state.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.errors import ValidationError
from iam.features.access.gate import allowed
from iam.features.modules.models import Module
from iam.features.permissions.service import parse_action
from iam.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class SimulationResult:
    user_id: int
    module_id: Optional[int]
    module_name: str
    action: str
    allowed: bool
    reason: Optional[str] = None
    justification: Tuple[str, ...] = ()


async def simulate_action(
    db: AsyncSession,
    user_id: int,
    action: str,
    *,
    module_id: Optional[int] = None,
    module_name: Optional[str] = None,
) -> SimulationResult:
    """
    Would ``user_id`` be allowed ``action`` on the module?

    The module is looked up by id when given, otherwise by name. An unknown
    module is a denial, not an error.
    """
    parsed = parse_action(action)
    if module_id is None and not module_name:
        raise ValidationError("Either moduleId or moduleName is required", field="moduleId")

    if module_id is not None:
        module = (await db.execute(select(Module).where(Module.id == module_id))).unique().scalar_one_or_none()
        if module is None:
            return SimulationResult(
                user_id=user_id,
                module_id=module_id,
                module_name=module_name or "unknown",
                action=parsed.value,
                allowed=False,
                reason=f"module #{module_id} not found",
            )
        module_name = module.name
    else:
        module_id = (await db.execute(select(Module.id).where(Module.name == module_name))).scalar_one_or_none()

    decision = await allowed(db, user_id, module_name, parsed.value)
    log.info(
        "Simulated %s on %s for user %s: %s",
        parsed.value, module_name, user_id, "allowed" if decision.granted else decision.reason,
    )
    return SimulationResult(
        user_id=user_id,
        module_id=module_id,
        module_name=module_name,
        action=parsed.value,
        allowed=decision.granted,
        reason=decision.reason,
        justification=decision.sources,
    )
