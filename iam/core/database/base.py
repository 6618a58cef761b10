"""
SQLAlchemy declarative base and common model utilities.

All SQLAlchemy models should inherit from Base.
"""
from datetime import datetime
from sqlalchemy import Boolean, DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Usage:
        from iam.core.database.base import Base

        class Module(Base):
            __tablename__ = "modules"

            id: Mapped[int] = mapped_column(primary_key=True)
            name: Mapped[str] = mapped_column(String(100))
    """
    pass


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.

    Usage:
        class Module(Base, TimestampMixin):
            __tablename__ = "modules"
            id: Mapped[int] = mapped_column(primary_key=True)
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ActiveMixin:
    """
    Soft activation flag.

    Inactive rows stay in place and stay assignable; they are only
    filtered out when effective permissions are resolved.
    """
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
