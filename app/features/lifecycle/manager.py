"""
Lifecycle manager for archivable entities.

    Active --delete--> SoftDeleted --restore--> Active
    SoftDeleted --permanently_delete--> gone
    Active --delete(cascade=True)--> gone, together with its related rows

Each operation is one transaction. State changes are conditional statements
(`WHERE is_deleted = <expected>`) whose row count is checked, so a concurrent
double-apply is reported instead of silently repeated.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
import math
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.base import DeleteReason
from app.core.errors import (
    AlreadyDeleted,
    ConstraintViolation,
    CoreError,
    HasRelatedRecords,
    InvalidPage,
    NotFound,
    NotSoftDeleted,
)
from app.features.access.context import UserContext, check_page_access
from app.features.access.matrix import PermissionMatrix
from app.features.lifecycle.audit import DeletionAuditLog
from app.features.lifecycle.registry import EntitySpec, Relation, get_entity_spec
from app.utils import get_logger


log = get_logger(__name__)

ARCHIVE_PAGE = "/archive"


@dataclass(frozen=True)
class SoftDeletedPage:
    items: list[Any]
    total: int
    page: int
    page_size: int
    total_pages: int


class LifecycleManager:
    """
    Runs lifecycle operations for one request.

    When a matrix is given, the action (or page) key is checked before the
    entity is looked up. Every query is scoped to the actor's organization
    unless the actor is SuperAdmin.
    """

    def __init__(
        self,
        db: AsyncSession,
        audit: Optional[DeletionAuditLog] = None,
        matrix: Optional[PermissionMatrix] = None,
    ):
        self.db = db
        self.audit = audit if audit is not None else DeletionAuditLog()
        self.matrix = matrix

    # ---- queries ----------------------------------------------------------

    def _authorize(self, actor: UserContext, key: str) -> None:
        if self.matrix is not None:
            check_page_access(self.matrix, actor, key)

    def _scoped(self, spec: EntitySpec, stmt, actor: UserContext):
        if actor.organization_id is not None:
            stmt = stmt.where(spec.model.organization_id == actor.organization_id)
        return stmt

    async def _load(self, spec: EntitySpec, entity_id: str, actor: UserContext):
        stmt = self._scoped(spec, select(spec.model).where(spec.model.id == entity_id), actor)
        stmt = stmt.execution_options(populate_existing=True)
        entity = (await self.db.execute(stmt)).scalar_one_or_none()
        if entity is None:
            raise NotFound(f"{spec.label.capitalize()} {entity_id} not found")
        return entity

    async def _count_related(self, spec: EntitySpec, entity_id: str) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for relation in spec.relations:
            stmt = select(func.count()).select_from(relation.model).where(relation.column == entity_id)
            counts[relation.name] = (await self.db.execute(stmt)).scalar_one()
        return counts

    async def _state_conflict(self, spec: EntitySpec, entity_id: str, actor: UserContext) -> CoreError:
        """Re-read after a conditional statement matched nothing."""
        try:
            entity = await self._load(spec, entity_id, actor)
        except NotFound as exc:
            return exc
        if entity.is_deleted:
            return AlreadyDeleted(f"{spec.label.capitalize()} {entity_id} is already deleted")
        return NotSoftDeleted(f"{spec.label.capitalize()} {entity_id} is not soft-deleted")

    async def get_related_record_counts(
        self, entity_type: str, entity_id: str, actor: UserContext
    ) -> Dict[str, int]:
        spec = get_entity_spec(entity_type)
        self._authorize(actor, spec.page)
        entity = await self._load(spec, entity_id, actor)
        return await self._count_related(spec, entity.id)

    async def list_soft_deleted(
        self,
        entity_type: str,
        page: int,
        page_size: int,
        actor: UserContext,
    ) -> SoftDeletedPage:
        if page < 1:
            raise InvalidPage("page must be >= 1")
        if not 1 <= page_size <= config.ARCHIVE_MAX_PAGE_SIZE:
            raise InvalidPage(f"page_size must be between 1 and {config.ARCHIVE_MAX_PAGE_SIZE}")

        spec = get_entity_spec(entity_type)
        self._authorize(actor, ARCHIVE_PAGE)
        model = spec.model

        count_stmt = self._scoped(
            spec, select(func.count()).select_from(model).where(model.is_deleted == True), actor
        )
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = self._scoped(spec, select(model).where(model.is_deleted == True), actor)
        stmt = stmt.order_by(model.deleted_at.desc(), model.id.desc())
        stmt = stmt.offset((page - 1) * page_size).limit(page_size)
        items = list((await self.db.execute(stmt)).scalars().all())

        return SoftDeletedPage(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
        )

    # ---- transitions ------------------------------------------------------

    async def _run(
        self,
        spec: EntitySpec,
        entity_id: str,
        operation: str,
        action_key: str,
        actor: UserContext,
        apply: Callable[[Any, Dict[str, Any]], Awaitable[Any]],
        detail: Optional[Dict[str, Any]] = None,
    ):
        """
        Authorize `action_key`, load the entity, apply the transition and
        commit, recording attempt/success/error around it. A refused action
        is recorded like any other failure. The audit buffer is flushed after
        the commit or rollback.
        """
        audit_kwargs: Dict[str, Any] = {
            "actor_id": actor.user_id,
            "organization_id": actor.organization_id,
        }
        attempt = self.audit.attempt(spec.entity_type, entity_id, operation, detail=detail, **audit_kwargs)
        try:
            self._authorize(actor, action_key)
            entity = await self._load(spec, entity_id, actor)
            # SuperAdmin has no tenant; file the trail under the entity's
            attempt.organization_id = audit_kwargs["organization_id"] = entity.organization_id
            result = await apply(entity, audit_kwargs)
            await self.db.commit()
        except CoreError as exc:
            await self.db.rollback()
            self.audit.error(
                spec.entity_type, entity_id, operation,
                detail={"error": exc.error, "message": exc.message},
                **audit_kwargs,
            )
            raise
        except SQLAlchemyError as exc:
            await self.db.rollback()
            self.audit.error(
                spec.entity_type, entity_id, operation,
                detail={"error": ConstraintViolation.error, "message": str(exc)},
                **audit_kwargs,
            )
            raise ConstraintViolation(f"{operation} of {spec.label} {entity_id} failed: {exc}") from exc
        else:
            self.audit.success(spec.entity_type, entity_id, operation, detail=detail, **audit_kwargs)
            return result
        finally:
            await self._flush_audit(spec, entity_id, operation)

    async def _flush_audit(self, spec: EntitySpec, entity_id: str, operation: str) -> None:
        """Persist the audit buffer without masking the operation's outcome."""
        try:
            await self.audit.flush(self.db)
        except SQLAlchemyError:
            log.exception(
                "Could not persist audit events for %s of %s %s", operation, spec.label, entity_id
            )
            await self.db.rollback()

    async def delete(
        self,
        entity_type: str,
        entity_id: str,
        actor: UserContext,
        cascade: bool = False,
        delete_reason: Optional[DeleteReason] = None,
    ):
        """
        Soft-delete an entity, or with `cascade` hard-delete it and all of
        its related rows.

        Returns the soft-deleted entity, or for a cascade the number of rows
        removed per relation.

        Raises:
            NotFound: no such entity in the actor's scope
            AlreadyDeleted: the entity is already soft-deleted
            HasRelatedRecords: related rows exist and cascade is off
            ConstraintViolation: storage refused a statement; nothing persisted
        """
        spec = get_entity_spec(entity_type)
        reason = DeleteReason(delete_reason) if delete_reason is not None else DeleteReason.OTHER

        async def apply(entity, audit_kwargs):
            if entity.is_deleted:
                raise AlreadyDeleted(f"{spec.label.capitalize()} {entity.id} is already deleted")
            if cascade:
                return await self._cascade(spec, entity, actor, audit_kwargs)

            counts = await self._count_related(spec, entity.id)
            if any(counts.values()):
                raise HasRelatedRecords(spec.label, counts)

            stmt = (
                update(spec.model)
                .where(spec.model.id == entity.id, spec.model.is_deleted == False)
                .values(
                    is_deleted=True,
                    deleted_at=datetime.now(timezone.utc),
                    deleted_by=actor.user_id,
                    delete_reason=reason,
                )
                .execution_options(synchronize_session=False)
            )
            if (await self.db.execute(stmt)).rowcount != 1:
                raise await self._state_conflict(spec, entity.id, actor)
            await self.db.refresh(entity)
            return entity

        operation = "cascade" if cascade else "soft_delete"
        return await self._run(
            spec, entity_id, operation, spec.delete_action, actor, apply,
            detail={"cascade": cascade, "delete_reason": reason.value},
        )

    async def _purge(self, relation: Relation, parent_ids: list[str]) -> int:
        """Delete the relation's rows under `parent_ids`, nested rows first."""
        ids_stmt = select(relation.model.id).where(relation.column.in_(parent_ids))
        ids = list((await self.db.execute(ids_stmt)).scalars().all())
        if not ids:
            return 0
        for child in relation.children:
            await self._purge(child, ids)
        stmt = (
            delete(relation.model)
            .where(relation.model.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        return (await self.db.execute(stmt)).rowcount

    async def _cascade(
        self,
        spec: EntitySpec,
        entity,
        actor: UserContext,
        audit_kwargs: Dict[str, Any],
    ) -> Dict[str, int]:
        completed: Dict[str, int] = {}
        for relation in spec.relations:
            self.audit.attempt(
                spec.entity_type, entity.id, "cascade_relation",
                detail={"relation": relation.name}, **audit_kwargs,
            )
            try:
                deleted = await self._purge(relation, [entity.id])
            except SQLAlchemyError as exc:
                self.audit.error(
                    spec.entity_type, entity.id, "cascade_relation",
                    detail={"relation": relation.name, "message": str(exc)}, **audit_kwargs,
                )
                raise ConstraintViolation(
                    f"Cascade delete of {spec.label} {entity.id} failed on {relation.name}",
                    completed=completed,
                    failed=relation.name,
                ) from exc
            completed[relation.name] = deleted
            self.audit.success(
                spec.entity_type, entity.id, "cascade_relation",
                detail={"relation": relation.name, "deleted": deleted}, **audit_kwargs,
            )

        stmt = (
            delete(spec.model)
            .where(spec.model.id == entity.id, spec.model.is_deleted == False)
            .execution_options(synchronize_session=False)
        )
        if (await self.db.execute(stmt)).rowcount != 1:
            raise await self._state_conflict(spec, entity.id, actor)
        self.db.expunge(entity)
        log.info("Cascade removed %s %s with %s", spec.label, entity.id, completed)
        return completed

    async def restore(self, entity_type: str, entity_id: str, actor: UserContext):
        """Bring a soft-deleted entity back and clear its deletion metadata."""
        spec = get_entity_spec(entity_type)

        async def apply(entity, _audit_kwargs):
            if not entity.is_deleted:
                raise NotSoftDeleted(f"{spec.label.capitalize()} {entity.id} is not soft-deleted")
            stmt = (
                update(spec.model)
                .where(spec.model.id == entity.id, spec.model.is_deleted == True)
                .values(is_deleted=False, deleted_at=None, deleted_by=None, delete_reason=None)
                .execution_options(synchronize_session=False)
            )
            if (await self.db.execute(stmt)).rowcount != 1:
                raise await self._state_conflict(spec, entity.id, actor)
            await self.db.refresh(entity)
            return entity

        return await self._run(spec, entity_id, "restore", spec.restore_action, actor, apply)

    async def permanently_delete(self, entity_type: str, entity_id: str, actor: UserContext) -> None:
        """Remove a soft-deleted entity for good."""
        spec = get_entity_spec(entity_type)

        async def apply(entity, _audit_kwargs):
            if not entity.is_deleted:
                raise NotSoftDeleted(
                    f"{spec.label.capitalize()} {entity.id} must be soft-deleted before it can be purged"
                )
            stmt = (
                delete(spec.model)
                .where(spec.model.id == entity.id, spec.model.is_deleted == True)
                .execution_options(synchronize_session=False)
            )
            if (await self.db.execute(stmt)).rowcount != 1:
                raise await self._state_conflict(spec, entity.id, actor)
            self.db.expunge(entity)

        await self._run(spec, entity_id, "purge", spec.purge_action, actor, apply)
