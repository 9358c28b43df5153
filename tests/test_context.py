"""
Authorization context resolution and binding store behaviour.
"""
import pytest
from sqlalchemy.exc import IntegrityError

from app.core import config
from app.core.errors import Forbidden, Unauthenticated
from app.features.access.context import (
    check_invite_permission,
    check_page_access,
    check_super_admin,
    resolve_context,
)
from app.features.access.matrix import load_permission_matrix
from app.features.access.roles import SystemRole
from app.features.organizations.models import OrganizationBinding
from app.features.organizations.store import (
    get_organization_binding,
    revoke_super_admin,
    update_member_role,
)
from app.features.users.auth import Principal

from conftest import context_for


pytestmark = pytest.mark.anyio


def principal(user) -> Principal:
    return Principal(user_id=user.id, email=user.email)


async def test_missing_principal_is_unauthenticated(db):
    with pytest.raises(Unauthenticated):
        await resolve_context(db, None)


async def test_single_binding_gives_tenant_context(db, seed):
    org = await seed.organization()
    user = await seed.user("coordinator")
    await seed.bind(user, org, SystemRole.ACADEMIC_COORDINATOR)

    context = await resolve_context(db, principal(user))

    assert context.organization_id == org.id
    assert context.role == SystemRole.ACADEMIC_COORDINATOR
    assert context.can_invite is False
    assert not context.is_super_admin


async def test_super_admin_takes_precedence_over_tenant_binding(db, seed):
    org = await seed.organization()
    user = await seed.user("root")
    await seed.bind(user, org, SystemRole.TEACHER)
    await seed.super_admin(user)

    context = await resolve_context(db, principal(user))

    assert context.organization_id is None
    assert context.role == SystemRole.SUPER_ADMIN
    assert context.can_invite is True
    assert context.is_super_admin


async def test_no_binding_is_unauthenticated(db, seed):
    user = await seed.user("loner")
    with pytest.raises(Unauthenticated):
        await resolve_context(db, principal(user))


async def test_inactive_binding_is_ignored(db, seed):
    org = await seed.organization()
    user = await seed.user("former")
    await seed.bind(user, org, SystemRole.TEACHER, is_active=False)
    with pytest.raises(Unauthenticated):
        await resolve_context(db, principal(user))


async def test_inactive_organization_grants_nothing(db, seed):
    org = await seed.organization(is_active=False)
    user = await seed.user("orphan")
    await seed.bind(user, org, SystemRole.ORGANIZATION_ADMIN)
    with pytest.raises(Unauthenticated):
        await resolve_context(db, principal(user))


async def test_revoked_super_admin_falls_back_to_tenant(db, seed):
    org = await seed.organization()
    user = await seed.user("demoted")
    await seed.bind(user, org, SystemRole.FINANCE_MANAGER)
    await seed.super_admin(user)

    assert await revoke_super_admin(db, user.id) == 1
    context = await resolve_context(db, principal(user))

    assert context.role == SystemRole.FINANCE_MANAGER
    assert context.organization_id == org.id


async def test_preferred_organization_wins(db, seed):
    first = await seed.organization("First")
    second = await seed.organization("Second")
    user = await seed.user("multi")
    await seed.bind(user, first, SystemRole.TEACHER)
    await seed.bind(user, second, SystemRole.FINANCE_MANAGER)

    context = await resolve_context(db, principal(user), preferred_organization_id=second.id)
    assert context.organization_id == second.id
    assert context.role == SystemRole.FINANCE_MANAGER

    context = await resolve_context(db, principal(user), preferred_organization_id=first.id)
    assert context.organization_id == first.id
    assert context.role == SystemRole.TEACHER


async def test_sentinel_organization_is_not_a_tenant(db, seed):
    user = await seed.user("sentinel")
    db.add(OrganizationBinding(
        user_id=user.id,
        organization_id=config.SYSTEM_ORGANIZATION_ID,
        role=SystemRole.ORGANIZATION_ADMIN,
    ))
    await db.commit()
    with pytest.raises(Unauthenticated):
        await resolve_context(db, principal(user))


async def test_one_active_binding_per_user_and_organization(db, seed):
    org = await seed.organization()
    user = await seed.user("dup")
    await seed.bind(user, org, SystemRole.TEACHER, is_active=False)
    await seed.bind(user, org, SystemRole.TEACHER)

    db.add(OrganizationBinding(user_id=user.id, organization_id=org.id, role=SystemRole.STUDENT))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()


async def test_promotion_to_org_admin_grants_invite(db, seed):
    org = await seed.organization()
    user = await seed.user("promoted")
    binding = await seed.bind(user, org, SystemRole.TEACHER)

    binding = await get_organization_binding(db, org.id, binding.id)
    updated = await update_member_role(db, binding, SystemRole.ORGANIZATION_ADMIN)

    assert updated.role == SystemRole.ORGANIZATION_ADMIN
    assert updated.can_invite is True
    context = await resolve_context(db, principal(user))
    assert context.can_invite is True


async def test_direct_insert_keeps_invite_flag_off(db, seed):
    org = await seed.organization()
    user = await seed.user("inserted")
    await seed.bind(user, org, SystemRole.ORGANIZATION_ADMIN)

    context = await resolve_context(db, principal(user))

    assert context.can_invite is False
    # Admins may invite regardless of the flag
    assert check_invite_permission(context) is context


async def test_demotion_leaves_invite_flag_untouched(db, seed):
    org = await seed.organization()
    user = await seed.user("demoted-admin")
    binding = await seed.bind(user, org, SystemRole.ORGANIZATION_ADMIN, can_invite=True)

    binding = await get_organization_binding(db, org.id, binding.id)
    updated = await update_member_role(db, binding, SystemRole.TEACHER)

    assert updated.can_invite is True


async def test_super_admin_is_not_assignable(db, seed):
    org = await seed.organization()
    user = await seed.user("climber")
    binding = await seed.bind(user, org, SystemRole.TEACHER)

    binding = await get_organization_binding(db, org.id, binding.id)
    with pytest.raises(Forbidden):
        await update_member_role(db, binding, SystemRole.SUPER_ADMIN)


async def test_invite_permission_follows_flag_for_other_roles(seed):
    user = await seed.user("inviter")
    assert check_invite_permission(context_for(user, "org", SystemRole.TEACHER, can_invite=True))
    with pytest.raises(Forbidden):
        check_invite_permission(context_for(user, "org", SystemRole.TEACHER))


async def test_page_and_super_admin_checks(seed):
    matrix = load_permission_matrix()
    user = await seed.user("checker")
    teacher = context_for(user, "org", SystemRole.TEACHER)

    assert check_page_access(matrix, teacher, "/exams") is teacher
    with pytest.raises(Forbidden):
        check_page_access(matrix, teacher, "/students")
    with pytest.raises(Forbidden):
        check_super_admin(teacher)
    assert check_super_admin(context_for(user, None, SystemRole.SUPER_ADMIN)).is_super_admin
