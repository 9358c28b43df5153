"""
Deletion audit log.

Every lifecycle transition is written to the process log the moment it
happens and buffered as a DeletionAuditEvent. The buffer is persisted once the
operation's transaction has committed or rolled back, so error events
survive the rollback of the work they describe.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.lifecycle.models import AuditAction, DeletionAuditEvent
from app.utils import get_logger


log = get_logger(__name__)


class DeletionAuditLog:
    """Buffers audit events for one unit of work."""

    def __init__(self) -> None:
        self._pending: list[DeletionAuditEvent] = []
        self._written: list[DeletionAuditEvent] = []

    @property
    def events(self) -> tuple[DeletionAuditEvent, ...]:
        """Everything recorded so far, persisted or not, oldest first."""
        return tuple(self._written + self._pending)

    def record(
        self,
        entity_type: str,
        entity_id: str,
        operation: str,
        action: AuditAction,
        actor_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        detail: Optional[Dict[str, Any]] = None,
    ) -> DeletionAuditEvent:
        audit_event = DeletionAuditEvent(
            timestamp=datetime.now(timezone.utc),
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            action=action,
            actor_id=actor_id,
            organization_id=organization_id,
            detail=detail,
        )
        self._pending.append(audit_event)

        message = "Lifecycle %s %s:%s %s actor=%s detail=%s"
        args = (operation, entity_type, entity_id, action.value, actor_id, detail)
        if action == AuditAction.ERROR:
            log.error(message, *args)
        else:
            log.info(message, *args)
        return audit_event

    def attempt(self, entity_type: str, entity_id: str, operation: str, **kwargs) -> DeletionAuditEvent:
        return self.record(entity_type, entity_id, operation, AuditAction.ATTEMPT, **kwargs)

    def success(self, entity_type: str, entity_id: str, operation: str, **kwargs) -> DeletionAuditEvent:
        return self.record(entity_type, entity_id, operation, AuditAction.SUCCESS, **kwargs)

    def error(self, entity_type: str, entity_id: str, operation: str, **kwargs) -> DeletionAuditEvent:
        return self.record(entity_type, entity_id, operation, AuditAction.ERROR, **kwargs)

    async def flush(self, db: AsyncSession) -> int:
        """
        Persist buffered events in their own commit.

        Must be called after the lifecycle transaction has ended. On failure
        the events stay buffered and the error propagates.
        """
        if not self._pending:
            return 0
        pending, self._pending = self._pending, []
        db.add_all(pending)
        try:
            await db.commit()
        except SQLAlchemyError:
            self._pending = pending + self._pending
            raise
        self._written.extend(pending)
        return len(pending)


async def list_audit_events(
    db: AsyncSession,
    organization_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> list[DeletionAuditEvent]:
    """Newest first. organization_id None means every tenant."""
    stmt = select(DeletionAuditEvent)
    if organization_id is not None:
        stmt = stmt.where(DeletionAuditEvent.organization_id == organization_id)
    if entity_type is not None:
        stmt = stmt.where(DeletionAuditEvent.entity_type == entity_type)
    if entity_id is not None:
        stmt = stmt.where(DeletionAuditEvent.entity_id == entity_id)
    stmt = stmt.order_by(DeletionAuditEvent.timestamp.desc(), DeletionAuditEvent.id.desc())
    result = await db.execute(stmt.offset(offset).limit(limit))
    return list(result.scalars().all())
