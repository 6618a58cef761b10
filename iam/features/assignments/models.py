"""
Association tables for the assignment graph.

Every link is a plain (parent_id, child_id) row with a composite primary key.
Rows carry no activity flag of their own; activity lives on the entities and
is only evaluated at resolution time.
"""
from datetime import datetime
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Table

from iam.core.database.base import Base


# User-Group membership
user_groups = Table(
    "user_groups",
    Base.metadata,
    Column("group_id", Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("assigned_at", DateTime(timezone=True), nullable=False, default=datetime.now),
)

# Group-Role grant
group_roles = Table(
    "group_roles",
    Base.metadata,
    Column("group_id", Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("assigned_at", DateTime(timezone=True), nullable=False, default=datetime.now),
)

# Role-Permission grant
role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("assigned_at", DateTime(timezone=True), nullable=False, default=datetime.now),
)

# Direct user permissions (override/supplement group roles)
user_permissions = Table(
    "user_permissions",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("assigned_at", DateTime(timezone=True), nullable=False, default=datetime.now),
)
