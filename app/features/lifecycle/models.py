"""
Deletion audit event model.
"""
from datetime import datetime
from typing import Any, Dict
import enum
from sqlalchemy import String, JSON, DateTime, Enum as SQLEnum, event
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, generate_ulid


class AuditAction(str, enum.Enum):
    ATTEMPT = "attempt"
    SUCCESS = "success"
    ERROR = "error"


class DeletionAuditEvent(Base):
    """
    One lifecycle transition attempt or outcome.

    Append-only: rows are inserted once and never updated.
    """
    __tablename__ = "deletion_audit_events"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(26), nullable=False, index=True)
    # delete, soft_delete, cascade, cascade_relation, restore, purge
    operation: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[AuditAction] = mapped_column(SQLEnum(AuditAction), nullable=False, index=True)

    # No foreign keys: the trail must outlive the actor and the entity
    actor_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)
    organization_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)
    detail: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<DeletionAuditEvent(id={self.id}, {self.entity_type}:{self.entity_id} "
            f"{self.operation}/{self.action.value})>"
        )


@event.listens_for(DeletionAuditEvent, "before_update")
def _reject_audit_update(_mapper, _connection, target):
    raise ValueError(f"Deletion audit events are immutable: {target!r}")
