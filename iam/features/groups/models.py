"""
Group model: a named set of users carrying a set of roles.
"""
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from iam.core.database.base import Base, TimestampMixin, ActiveMixin


class Group(Base, TimestampMixin, ActiveMixin):
    """
    Groups simplify permission management by granting roles to a set of
    users instead of to each user. Examples: Support, Administrators
    """
    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    users: Mapped[list["User"]] = relationship(  # type: ignore
        "User",
        secondary="user_groups",
        back_populates="groups",
        order_by="User.id",
        passive_deletes=True,
        lazy="selectin",
    )

    roles: Mapped[list["Role"]] = relationship(  # type: ignore
        "Role",
        secondary="group_roles",
        order_by="Role.id",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Group(id={self.id}, name={self.name!r})>"
