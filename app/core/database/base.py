"""
SQLAlchemy declarative base and common model utilities.

All SQLAlchemy models should inherit from Base.
"""
from dataclasses import dataclass
from datetime import datetime
import enum

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
import ulid


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return ulid.new().str


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Usage:
        from app.core.database.base import Base

        class Student(Base):
            __tablename__ = "students"

            id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
            first_name: Mapped[str] = mapped_column(String(100))
    """
    pass


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.

    Usage:
        class Student(Base, TimestampMixin):
            __tablename__ = "students"
            id: Mapped[str] = mapped_column(String(26), primary_key=True)
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


class DeleteReason(str, enum.Enum):
    """Why an entity was archived."""
    GRADUATED = "GRADUATED"
    TRANSFERRED = "TRANSFERRED"
    RESIGNED = "RESIGNED"
    TERMINATED = "TERMINATED"
    REASSIGNED = "REASSIGNED"
    CANCELLED = "CANCELLED"
    ERROR = "ERROR"
    OTHER = "OTHER"


@dataclass(frozen=True)
class LifecycleState:
    """Read-only snapshot of an entity's deletion fields."""
    is_deleted: bool
    deleted_at: datetime | None
    deleted_by: str | None
    delete_reason: DeleteReason | None

    @property
    def name(self) -> str:
        return "soft_deleted" if self.is_deleted else "active"


class SoftDeleteMixin:
    """
    Mixin for entities that can be archived instead of removed.

    Only the lifecycle manager writes these columns. An active row has
    deleted_at = NULL; restoring clears all deletion metadata.

    Usage:
        class Teacher(Base, TimestampMixin, SoftDeleteMixin):
            __tablename__ = "teachers"
    """
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by: Mapped[str | None] = mapped_column(String(26), nullable=True)
    delete_reason: Mapped[DeleteReason | None] = mapped_column(SQLEnum(DeleteReason), nullable=True)

    @property
    def lifecycle(self) -> LifecycleState:
        return LifecycleState(
            is_deleted=self.is_deleted,
            deleted_at=self.deleted_at,
            deleted_by=self.deleted_by,
            delete_reason=self.delete_reason,
        )
