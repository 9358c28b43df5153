"""
Pydantic schemas for lifecycle and archive API responses.
"""
from datetime import datetime
from typing import Any, Dict
from pydantic import BaseModel, ConfigDict

from app.core.database.base import DeleteReason
from app.features.lifecycle.models import AuditAction


class RelatedRecordsResponse(BaseModel):
    """Related row counts keyed by relation name."""
    entity_type: str
    entity_id: str
    related_records: Dict[str, int]
    can_delete: bool


class ArchivedEntityResponse(BaseModel):
    """Lifecycle view of an archivable entity."""
    id: str
    organization_id: str
    label: str
    is_deleted: bool
    deleted_at: datetime | None = None
    deleted_by: str | None = None
    delete_reason: DeleteReason | None = None

    model_config = ConfigDict(from_attributes=True)


class CascadeDeleteResponse(BaseModel):
    entity_type: str
    entity_id: str
    purged: Dict[str, int]


class SoftDeletedPageResponse(BaseModel):
    items: list[ArchivedEntityResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class AuditEventResponse(BaseModel):
    id: str
    timestamp: datetime
    entity_type: str
    entity_id: str
    operation: str
    action: AuditAction
    actor_id: str | None = None
    organization_id: str | None = None
    detail: Dict[str, Any] | None = None

    model_config = ConfigDict(from_attributes=True)
