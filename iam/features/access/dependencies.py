"""
FastAPI dependencies that guard endpoints through the authorization gate.
"""
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from iam.core.database.engine import get_db
from iam.features.access.gate import allowed
from iam.features.access.resolver import EffectivePermissions, resolve_effective_permissions
from iam.features.users.dependencies import get_current_user
from iam.features.users.models import User


async def get_effective_permissions(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> EffectivePermissions:
    """
    Resolve the caller's permissions once per request.

    The set is kept on ``request.state`` so several guards on one request
    share a single resolution.
    """
    effective = getattr(request.state, "effective_permissions", None)
    if effective is None or effective.user_id != current_user.id:
        effective = await resolve_effective_permissions(db, current_user.id)
        request.state.effective_permissions = effective
    return effective


def require_permission(module_name: str, action: str):
    """
    FastAPI dependency to require a specific permission.

    Usage:
        @router.post("/modules")
        async def create_module(
            db: AsyncSession = Depends(get_db),
            user: User = Depends(require_permission("Modules", "create"))
        ):
            # User may create modules
            pass

    Raises:
        HTTPException: 403 with the gate's reason if the caller is denied
    """
    async def permission_dependency(
        request: Request,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(get_current_user),
    ) -> User:
        effective = await get_effective_permissions(request, db, current_user)
        decision = await allowed(db, current_user.id, module_name, action, effective=effective)
        if not decision.granted:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {decision.reason}",
            )
        return current_user

    return permission_dependency
