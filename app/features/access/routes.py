"""
Authorization context routes.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.errors import Forbidden, Unauthenticated
from app.features.access.context import UserContext
from app.features.access.dependencies import (
    get_permission_matrix,
    require_auth,
    require_invite_permission,
)
from app.features.access.matrix import PermissionMatrix
from app.features.access.roles import ROLE_NAMES
from app.features.access.schemas import (
    UserContextResponse,
    SuperAdminCheckResponse,
    AccessiblePagesResponse,
    SwitchOrganizationRequest,
)
from app.features.organizations.store import find_tenant_binding
from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


@router.get("/context", response_model=UserContextResponse)
async def get_context(
    context: Annotated[UserContext, Depends(require_auth)]
):
    """Current user's organization, role and invite capability."""
    return UserContextResponse.from_context(context)


@router.get("/check-super-admin", response_model=SuperAdminCheckResponse)
async def check_super_admin(
    context: Annotated[UserContext, Depends(require_auth)]
):
    return SuperAdminCheckResponse(is_super_admin=context.is_super_admin)


@router.get("/pages", response_model=AccessiblePagesResponse)
async def get_accessible_pages(
    context: Annotated[UserContext, Depends(require_auth)],
    matrix: Annotated[PermissionMatrix, Depends(get_permission_matrix)]
):
    """Pages the current role may open, for building navigation."""
    return AccessiblePagesResponse(
        role=context.role,
        role_name=ROLE_NAMES[context.role],
        pages=matrix.accessible_pages(context.role),
    )


@router.get("/invite-permission", response_model=UserContextResponse)
async def check_invite_permission(
    context: Annotated[UserContext, Depends(require_invite_permission)]
):
    """Succeeds only for callers allowed to invite users."""
    return UserContextResponse.from_context(context)


@router.post("/switch-organization", response_model=UserContextResponse)
async def switch_organization(
    switch_data: SwitchOrganizationRequest,
    user: Annotated[Optional[User], Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Make another of the user's organizations the active one."""
    if user is None:
        raise Unauthenticated("Unauthorized - User not authenticated")

    binding = await find_tenant_binding(db, user.id, switch_data.organization_id)
    if binding is None or binding.organization_id != switch_data.organization_id:
        raise Forbidden("You are not a member of this organization")

    user.current_organization_id = switch_data.organization_id
    await db.commit()
    log.info("User %s switched to organization %s", user.id, switch_data.organization_id)

    return UserContextResponse.from_context(UserContext(
        user_id=user.id,
        email=user.email,
        organization_id=binding.organization_id,
        role=binding.role,
        can_invite=binding.can_invite,
    ))
