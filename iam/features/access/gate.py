"""
The authorization gate.

``allowed`` is the single decision point: endpoint guards, the
``/check`` endpoint, capability maps and the simulation service all go
through it (or through ``match``, its pure half). It fails closed; a
resolution failure is a denial, never a grant.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.errors import ResolutionError
from iam.features.access.resolver import EffectivePermissions, ResolvedPermission, resolve_effective_permissions
from iam.features.modules.models import Module
from iam.features.permissions.models import Action
from iam.features.permissions.service import parse_action
from iam.utils import get_logger


log = get_logger(__name__)

RESOLUTION_FAILED = "permission resolution failed"


@dataclass(frozen=True)
class Decision:
    granted: bool
    reason: Optional[str] = None
    # Paths that grant the permission, when granted
    sources: Tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.granted


def match(effective: EffectivePermissions, module_name: str, action: Action) -> Optional[ResolvedPermission]:
    """Find the resolved permission for (module_name, action), if any."""
    if not effective.subject_active:
        return None
    return effective.find(module_name, action.value)


async def _denial_reason(
    db: AsyncSession, effective: EffectivePermissions, module_name: str, action: Action
) -> str:
    try:
        result = await db.execute(select(Module.is_active).where(Module.name == module_name))
        module_active = result.scalar_one_or_none()
    except SQLAlchemyError:
        log.exception("Module lookup failed while explaining a denial")
        return RESOLUTION_FAILED

    if module_active is None:
        return f"module '{module_name}' not found"
    if not module_active:
        return f"module '{module_name}' is inactive"
    if not effective.subject_active:
        return f"user '{effective.username}' is inactive"
    return f"no {action.value} permission for {module_name}"


async def allowed(
    db: AsyncSession,
    subject_id: int,
    module_name: str,
    action: str,
    effective: Optional[EffectivePermissions] = None,
) -> Decision:
    """
    Decide whether a subject may perform ``action`` on the module named
    ``module_name``.

    Pass ``effective`` to reuse a set already resolved for this subject in
    the current request.

    Raises:
        ValidationError: unknown action
        NotFoundError: the subject does not exist
    """
    parsed = parse_action(action)

    if effective is None:
        try:
            effective = await resolve_effective_permissions(db, subject_id)
        except ResolutionError:
            log.warning("Denied %s on %s for user %s: resolution failed", parsed.value, module_name, subject_id)
            return Decision(granted=False, reason=RESOLUTION_FAILED)

    permission = match(effective, module_name, parsed)
    if permission is not None:
        return Decision(granted=True, sources=permission.sources)

    reason = await _denial_reason(db, effective, module_name, parsed)
    log.debug("Denied %s on %s for user %s: %s", parsed.value, module_name, subject_id, reason)
    return Decision(granted=False, reason=reason)


def capabilities(
    effective: EffectivePermissions,
    module_names: Optional[Iterable[str]] = None,
) -> Dict[str, Dict[str, bool]]:
    """
    Per-module action flags for UI affordances.

    Covers the modules in ``effective`` plus any extra ``module_names``.
    """
    names = set(effective.module_names())
    if module_names is not None:
        names.update(module_names)
    return {
        name: {action.value: match(effective, name, action) is not None for action in Action}
        for name in sorted(names)
    }
