"""
Role/organization binding store.

Read access for the authorization context builder plus the few write paths
that change bindings (role update, invite flag, super admin grants).
"""
from typing import Optional
from sqlalchemy import select, update, case
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.errors import Forbidden, NotFound
from app.features.access.roles import SystemRole, ASSIGNABLE_ROLES
from app.features.organizations.models import Organization, OrganizationBinding
from app.utils import get_logger


log = get_logger(__name__)


async def find_active_binding(
    db: AsyncSession,
    user_id: str,
    organization_id: str
) -> Optional[OrganizationBinding]:
    """Active binding for (user, organization), or None. Accepts the sentinel id."""
    result = await db.execute(
        select(OrganizationBinding).where(
            OrganizationBinding.user_id == user_id,
            OrganizationBinding.organization_id == organization_id,
            OrganizationBinding.is_active == True,
        )
    )
    return result.scalars().first()


async def find_tenant_binding(
    db: AsyncSession,
    user_id: str,
    preferred_organization_id: Optional[str] = None
) -> Optional[OrganizationBinding]:
    """
    The user's usable binding to a real, active organization.

    When the user belongs to several organizations the preferred one wins,
    then the oldest binding.
    """
    stmt = (
        select(OrganizationBinding)
        .join(Organization, Organization.id == OrganizationBinding.organization_id)
        .where(
            OrganizationBinding.user_id == user_id,
            OrganizationBinding.is_active == True,
            OrganizationBinding.role != SystemRole.SUPER_ADMIN,
            Organization.is_active == True,
        )
    )
    if preferred_organization_id:
        stmt = stmt.order_by(
            case((OrganizationBinding.organization_id == preferred_organization_id, 0), else_=1)
        )
    stmt = stmt.order_by(OrganizationBinding.created_at, OrganizationBinding.id).limit(1)

    result = await db.execute(stmt)
    return result.scalars().first()


async def get_organization_binding(
    db: AsyncSession,
    organization_id: str,
    binding_id: str
) -> OrganizationBinding:
    """Binding by id, scoped to the organization. Raises NotFound otherwise."""
    result = await db.execute(
        select(OrganizationBinding).where(
            OrganizationBinding.id == binding_id,
            OrganizationBinding.organization_id == organization_id,
        )
    )
    binding = result.scalar_one_or_none()
    if binding is None:
        raise NotFound("Organization member not found")
    return binding


async def list_organization_members(
    db: AsyncSession,
    organization_id: str
) -> list[OrganizationBinding]:
    result = await db.execute(
        select(OrganizationBinding)
        .where(OrganizationBinding.organization_id == organization_id)
        .order_by(OrganizationBinding.created_at, OrganizationBinding.id)
    )
    return list(result.scalars().all())


async def update_member_role(
    db: AsyncSession,
    binding: OrganizationBinding,
    role: SystemRole
) -> OrganizationBinding:
    """
    Reassign a member's role.

    Assigning OrganizationAdmin also grants can_invite. Other roles leave the
    flag untouched. SuperAdmin is never assignable here.
    """
    if role not in ASSIGNABLE_ROLES:
        raise Forbidden(f"Role {role.value} cannot be assigned to an organization member")

    binding.role = role
    if role == SystemRole.ORGANIZATION_ADMIN:
        binding.can_invite = True

    await db.commit()
    await db.refresh(binding)
    log.info(
        "Role updated: binding=%s org=%s role=%s can_invite=%s",
        binding.id, binding.organization_id, role.value, binding.can_invite
    )
    return binding


async def set_invite_permission(
    db: AsyncSession,
    binding: OrganizationBinding,
    can_invite: bool
) -> OrganizationBinding:
    binding.can_invite = can_invite
    await db.commit()
    await db.refresh(binding)
    log.info("Invite permission updated: binding=%s can_invite=%s", binding.id, can_invite)
    return binding


async def grant_super_admin(db: AsyncSession, user_id: str) -> OrganizationBinding:
    """Create the user's sentinel SuperAdmin binding unless one is already active."""
    existing = await find_active_binding(db, user_id, config.SYSTEM_ORGANIZATION_ID)
    if existing is not None and existing.role == SystemRole.SUPER_ADMIN:
        return existing

    binding = OrganizationBinding(
        user_id=user_id,
        organization_id=config.SYSTEM_ORGANIZATION_ID,
        role=SystemRole.SUPER_ADMIN,
        can_invite=True,
        is_active=True,
    )
    db.add(binding)
    await db.commit()
    await db.refresh(binding)
    log.warning("Granted SuperAdmin to user %s", user_id)
    return binding


async def revoke_super_admin(db: AsyncSession, user_id: str) -> int:
    """Deactivate every sentinel SuperAdmin binding the user holds."""
    result = await db.execute(
        update(OrganizationBinding)
        .where(
            OrganizationBinding.user_id == user_id,
            OrganizationBinding.organization_id == config.SYSTEM_ORGANIZATION_ID,
            OrganizationBinding.role == SystemRole.SUPER_ADMIN,
            OrganizationBinding.is_active == True,
        )
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    log.warning("Revoked SuperAdmin from user %s (%d bindings)", user_id, result.rowcount)
    return result.rowcount
