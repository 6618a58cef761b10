"""
User model for console accounts.
"""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from iam.core.database.base import Base, TimestampMixin, ActiveMixin


class User(Base, TimestampMixin, ActiveMixin):
    """
    User account identified by a unique username and a unique email.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    # pbkdf2_sha256$<iterations>$<salt>$<digest>
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Optional profile fields
    first_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(150), nullable=True)

    groups: Mapped[list["Group"]] = relationship(  # type: ignore
        "Group",
        secondary="user_groups",
        back_populates="users",
        order_by="Group.id",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username!r})>"
