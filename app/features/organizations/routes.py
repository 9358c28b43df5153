"""
Organization membership administration routes (SuperAdmin only).
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.access.context import UserContext
from app.features.access.dependencies import require_super_admin
from app.features.organizations.schemas import (
    MemberResponse,
    RoleUpdateRequest,
    InvitePermissionUpdate,
)
from app.features.organizations.store import (
    get_organization_binding,
    list_organization_members,
    update_member_role,
    set_invite_permission,
)


router = APIRouter()


@router.get("/{organization_id}/users", response_model=list[MemberResponse])
async def list_members(
    organization_id: str,
    _admin: Annotated[UserContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """All bindings of an organization, active or not."""
    return await list_organization_members(db, organization_id)


@router.patch("/{organization_id}/users/{binding_id}/role", response_model=MemberResponse)
async def update_role(
    organization_id: str,
    binding_id: str,
    role_data: RoleUpdateRequest,
    _admin: Annotated[UserContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Change a member's role.

    Promoting to OrganizationAdmin also grants invite permission.
    """
    binding = await get_organization_binding(db, organization_id, binding_id)
    return await update_member_role(db, binding, role_data.role)


@router.patch("/{organization_id}/users/{binding_id}/invite-permission", response_model=MemberResponse)
async def update_invite_permission(
    organization_id: str,
    binding_id: str,
    permission_data: InvitePermissionUpdate,
    _admin: Annotated[UserContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    binding = await get_organization_binding(db, organization_id, binding_id)
    return await set_invite_permission(db, binding, permission_data.can_invite)
