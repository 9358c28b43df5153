"""
Lifecycle and archive API routes.

/lifecycle: related-record counts, delete (soft or cascade) and restore.
/archive:   soft-deleted listings, permanent deletion and the audit trail.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.base import DeleteReason
from app.core.database.engine import get_db
from app.features.access.context import UserContext
from app.features.access.dependencies import (
    get_permission_matrix,
    require_auth,
    require_page_access,
)
from app.features.access.matrix import PermissionMatrix
from app.features.lifecycle.audit import list_audit_events
from app.features.lifecycle.manager import LifecycleManager
from app.features.lifecycle.registry import EntityType
from app.features.lifecycle.schemas import (
    ArchivedEntityResponse,
    AuditEventResponse,
    CascadeDeleteResponse,
    RelatedRecordsResponse,
    SoftDeletedPageResponse,
)


router = APIRouter()
archive_router = APIRouter()


def get_lifecycle_manager(
    db: Annotated[AsyncSession, Depends(get_db)],
    matrix: Annotated[PermissionMatrix, Depends(get_permission_matrix)]
) -> LifecycleManager:
    return LifecycleManager(db, matrix=matrix)


@router.get("/{entity_type}/{entity_id}/related-records", response_model=RelatedRecordsResponse)
async def get_related_records(
    entity_type: EntityType,
    entity_id: str,
    context: Annotated[UserContext, Depends(require_auth)],
    manager: Annotated[LifecycleManager, Depends(get_lifecycle_manager)]
):
    """
    Count the rows that would block a plain delete.

    Clients call this before offering a delete so they can warn about, or
    offer a cascade over, the related records.
    """
    counts = await manager.get_related_record_counts(entity_type.value, entity_id, context)
    return RelatedRecordsResponse(
        entity_type=entity_type.value,
        entity_id=entity_id,
        related_records=counts,
        can_delete=not any(counts.values()),
    )


@router.delete(
    "/{entity_type}/{entity_id}",
    response_model=ArchivedEntityResponse | CascadeDeleteResponse,
)
async def delete_entity(
    entity_type: EntityType,
    entity_id: str,
    context: Annotated[UserContext, Depends(require_auth)],
    manager: Annotated[LifecycleManager, Depends(get_lifecycle_manager)],
    cascade: bool = False,
    delete_reason: Optional[DeleteReason] = None
):
    """
    Soft-delete an entity, or hard-delete it with its related rows when
    `cascade=true`.

    Raises:
        HasRelatedRecords (400): related rows exist and cascade is off
        AlreadyDeleted (400): the entity is already archived
        NotFound (404): no such entity in the caller's organization
        ConstraintViolation (500): the cascade failed and was rolled back
    """
    result = await manager.delete(
        entity_type.value, entity_id, context, cascade=cascade, delete_reason=delete_reason
    )
    if cascade:
        return CascadeDeleteResponse(entity_type=entity_type.value, entity_id=entity_id, purged=result)
    return ArchivedEntityResponse.model_validate(result)


@router.post("/{entity_type}/{entity_id}/restore", response_model=ArchivedEntityResponse)
async def restore_entity(
    entity_type: EntityType,
    entity_id: str,
    context: Annotated[UserContext, Depends(require_auth)],
    manager: Annotated[LifecycleManager, Depends(get_lifecycle_manager)]
):
    entity = await manager.restore(entity_type.value, entity_id, context)
    return ArchivedEntityResponse.model_validate(entity)


@archive_router.get("/audit-events", response_model=list[AuditEventResponse])
async def get_audit_events(
    context: Annotated[UserContext, Depends(require_page_access("/audit"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    entity_type: Optional[EntityType] = None,
    entity_id: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500)
):
    """Deletion audit trail, newest first, limited to the caller's organization."""
    return await list_audit_events(
        db,
        organization_id=context.organization_id,
        entity_type=entity_type.value if entity_type else None,
        entity_id=entity_id,
        limit=limit,
        offset=skip,
    )


@archive_router.get("/{entity_type}", response_model=SoftDeletedPageResponse)
async def list_archived(
    entity_type: EntityType,
    context: Annotated[UserContext, Depends(require_auth)],
    manager: Annotated[LifecycleManager, Depends(get_lifecycle_manager)],
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=config.ARCHIVE_MAX_PAGE_SIZE)
):
    """Soft-deleted entities of one type, most recently deleted first."""
    result = await manager.list_soft_deleted(entity_type.value, page, page_size, context)
    return SoftDeletedPageResponse(
        items=[ArchivedEntityResponse.model_validate(item) for item in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


@archive_router.delete("/{entity_type}/{entity_id}", status_code=204)
async def purge_entity(
    entity_type: EntityType,
    entity_id: str,
    context: Annotated[UserContext, Depends(require_auth)],
    manager: Annotated[LifecycleManager, Depends(get_lifecycle_manager)]
):
    """Permanently delete an archived entity. Active entities are refused."""
    await manager.permanently_delete(entity_type.value, entity_id, context)
