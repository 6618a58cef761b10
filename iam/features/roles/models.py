"""
Role model: an independently activatable bundle of permissions.
"""
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from iam.core.database.base import Base, TimestampMixin, ActiveMixin


class Role(Base, TimestampMixin, ActiveMixin):
    """
    Role model for grouping permissions.
    Examples: Administrator, Viewer, Auditor
    """
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    permissions: Mapped[list["Permission"]] = relationship(  # type: ignore
        "Permission",
        secondary="role_permissions",
        order_by="Permission.id",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name!r})>"
