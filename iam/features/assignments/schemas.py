"""
Request bodies for bulk assignments.
"""
from typing import List
from pydantic import Field

from iam.core.schemas import CamelModel


class AssignUsersToGroup(CamelModel):
    user_ids: List[int] = Field(..., min_length=1, description="User IDs to add to the group")


class AssignRolesToGroup(CamelModel):
    role_ids: List[int] = Field(..., min_length=1, description="Role IDs to grant to the group")


class AssignPermissionsToRole(CamelModel):
    permission_ids: List[int] = Field(..., min_length=1, description="Permission IDs to add to the role")


class AssignPermissionsToUser(CamelModel):
    permission_ids: List[int] = Field(..., min_length=1, description="Permission IDs to grant directly")
