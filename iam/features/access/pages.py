"""
Console page access map.

Each console page lists the (module, action) pairs that unlock it; a page
with no requirements is always accessible. Having any one listed pair is
enough.
"""
from typing import Dict, List, Tuple

from iam.features.access.gate import match
from iam.features.access.resolver import EffectivePermissions
from iam.features.permissions.models import Action


PAGE_PERMISSIONS: Dict[str, Tuple[Tuple[str, Action], ...]] = {
    "/dashboard": (),
    "/users": (("Users", Action.READ),),
    "/groups": (("Groups", Action.READ),),
    "/roles": (("Roles", Action.READ),),
    "/modules": (("Modules", Action.READ),),
    "/permissions": (("Permissions", Action.READ),),
}


def has_page_permission(effective: EffectivePermissions, page: str) -> bool:
    if page not in PAGE_PERMISSIONS:
        return False
    required = PAGE_PERMISSIONS[page]
    if not required:
        return True
    return any(match(effective, module, action) is not None for module, action in required)


def accessible_pages(effective: EffectivePermissions) -> List[str]:
    return [page for page in PAGE_PERMISSIONS if has_page_permission(effective, page)]
