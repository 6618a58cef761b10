"""
Import every model so the mappers and tables are registered together.
"""
from iam.features.assignments.models import (  # noqa: F401
    user_groups,
    group_roles,
    role_permissions,
    user_permissions,
)
from iam.features.modules.models import Module  # noqa: F401
from iam.features.permissions.models import Action, Permission  # noqa: F401
from iam.features.roles.models import Role  # noqa: F401
from iam.features.groups.models import Group  # noqa: F401
from iam.features.users.models import User  # noqa: F401
