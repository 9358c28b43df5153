"""
Pydantic schemas for authorization context responses.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from app.features.access.roles import SystemRole


class UserContextResponse(BaseModel):
    """The caller's resolved authorization context."""
    user_id: str
    email: str
    organization_id: Optional[str] = None
    role: SystemRole
    can_invite: bool
    is_super_admin: bool

    @classmethod
    def from_context(cls, context) -> "UserContextResponse":
        return cls(
            user_id=context.user_id,
            email=context.email,
            organization_id=context.organization_id,
            role=context.role,
            can_invite=context.can_invite,
            is_super_admin=context.is_super_admin,
        )


class SuperAdminCheckResponse(BaseModel):
    is_super_admin: bool


class AccessiblePagesResponse(BaseModel):
    role: SystemRole
    role_name: str
    pages: List[str] = []


class SwitchOrganizationRequest(BaseModel):
    organization_id: str = Field(..., min_length=1, max_length=26)
