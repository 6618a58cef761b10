"""
Permission model and the closed set of actions it can grant.
"""
import enum
from sqlalchemy import ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from iam.core.database.base import Base, TimestampMixin, ActiveMixin


class Action(str, enum.Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class Permission(Base, TimestampMixin, ActiveMixin):
    """
    Grant of one action on one module.

    At most one *active* permission may exist per (module_id, action); the
    partial unique index backs the check done in the service layer.
    The module reference never changes after creation.
    """
    __tablename__ = "permissions"
    __table_args__ = (
        Index(
            "uq_permissions_module_action_active",
            "module_id",
            "action",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    action: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    module_id: Mapped[int] = mapped_column(
        ForeignKey("modules.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    module: Mapped["Module"] = relationship(  # type: ignore
        "Module",
        back_populates="permissions",
        lazy="joined",
    )

    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, module_id={self.module_id}, action={self.action})>"
