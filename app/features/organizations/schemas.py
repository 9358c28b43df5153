"""
Pydantic schemas for organization membership administration.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator

from app.features.access.roles import ASSIGNABLE_ROLES, SystemRole


class MemberResponse(BaseModel):
    """One organization binding."""
    id: str
    user_id: str
    organization_id: str
    role: SystemRole
    can_invite: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleUpdateRequest(BaseModel):
    role: SystemRole

    @field_validator("role")
    @classmethod
    def role_must_be_assignable(cls, value: SystemRole) -> SystemRole:
        if value not in ASSIGNABLE_ROLES:
            raise ValueError(f"Role {value.value} cannot be assigned to an organization member")
        return value


class InvitePermissionUpdate(BaseModel):
    can_invite: bool
