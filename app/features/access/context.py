"""
Authorization context builder.

Turns an authenticated principal into a UserContext scoped to one
organization, or to the whole platform for SuperAdmin.
"""
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.errors import Forbidden, Unauthenticated
from app.features.access.matrix import PermissionMatrix
from app.features.access.roles import SystemRole, can_invite_users, is_super_admin as role_is_super_admin
from app.features.organizations.store import find_active_binding, find_tenant_binding
from app.features.users.auth import Principal
from app.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class UserContext:
    """
    Per-request authorization context. Never persisted.

    organization_id is None only for SuperAdmin, whose scope is the platform.
    """
    user_id: str
    email: str
    organization_id: Optional[str]
    role: SystemRole
    can_invite: bool

    @property
    def is_super_admin(self) -> bool:
        return role_is_super_admin(self.role)


async def resolve_context(
    db: AsyncSession,
    principal: Optional[Principal],
    preferred_organization_id: Optional[str] = None
) -> UserContext:
    """
    Resolve the principal's authorization context.

    1. No principal -> Unauthenticated.
    2. Active sentinel SuperAdmin binding -> platform-wide context. This wins
       over any tenant binding the user also holds.
    3. Active binding to an active organization -> tenant context.
    4. Nothing usable -> Unauthenticated.
    """
    if principal is None:
        raise Unauthenticated("Unauthorized - User not authenticated")

    system_binding = await find_active_binding(db, principal.user_id, config.SYSTEM_ORGANIZATION_ID)
    if system_binding is not None and system_binding.role == SystemRole.SUPER_ADMIN:
        return UserContext(
            user_id=principal.user_id,
            email=principal.email,
            organization_id=None,
            role=SystemRole.SUPER_ADMIN,
            can_invite=True,
        )

    binding = await find_tenant_binding(db, principal.user_id, preferred_organization_id)
    if binding is None:
        log.info("User %s has no active organization binding", principal.user_id)
        raise Unauthenticated("Unauthorized - No active organization membership")

    return UserContext(
        user_id=principal.user_id,
        email=principal.email,
        organization_id=binding.organization_id,
        role=binding.role,
        can_invite=binding.can_invite,
    )


def check_page_access(matrix: PermissionMatrix, context: UserContext, key: str) -> UserContext:
    """Raise Forbidden unless the context's role is allowed on `key`."""
    if not matrix.is_allowed(context.role, key):
        log.info("Denied %s for user %s with role %s", key, context.user_id, context.role.value)
        raise Forbidden(f"Forbidden - User role {context.role.value} cannot access {key}")
    return context


def check_invite_permission(context: UserContext) -> UserContext:
    if not can_invite_users(context.role, context.can_invite):
        raise Forbidden(f"Forbidden - User role {context.role.value} cannot invite users")
    return context


def check_super_admin(context: UserContext) -> UserContext:
    if not context.is_super_admin:
        raise Forbidden("Forbidden - Super Admin access required")
    return context
