"""
Module model: a named, protectable resource category.
"""
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from iam.core.database.base import Base, TimestampMixin, ActiveMixin


class Module(Base, TimestampMixin, ActiveMixin):
    """
    Resource category that permissions are scoped to.
    Examples: Users, Groups, Roles, Modules, Permissions
    """
    __tablename__ = "modules"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    permissions: Mapped[list["Permission"]] = relationship(  # type: ignore
        "Permission",
        back_populates="module",
        order_by="Permission.id",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Module(id={self.id}, name={self.name!r})>"
