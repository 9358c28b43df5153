"""
SuperAdmin grant/revoke through the binding store, as the CLI drives it.
"""
import pytest

from app.core import config
from app.features.access.roles import SystemRole
from app.features.organizations.store import find_active_binding, grant_super_admin, revoke_super_admin
from scripts.manage_super_admin import find_user, parse_args


pytestmark = pytest.mark.anyio


def test_parse_args():
    args = parse_args(["grant", "admin@example.com"])
    assert args.command == "grant"
    assert args.email == "admin@example.com"
    with pytest.raises(SystemExit):
        parse_args(["promote", "admin@example.com"])


async def test_grant_is_idempotent_and_revocable(db, seed):
    user = await seed.user("root")
    assert (await find_user(db, user.email)).id == user.id

    first = await grant_super_admin(db, user.id)
    second = await grant_super_admin(db, user.id)
    assert first.id == second.id
    assert first.organization_id == config.SYSTEM_ORGANIZATION_ID
    assert first.role == SystemRole.SUPER_ADMIN
    assert first.can_invite is True

    assert await revoke_super_admin(db, user.id) == 1
    assert await revoke_super_admin(db, user.id) == 0
    assert await find_active_binding(db, user.id, config.SYSTEM_ORGANIZATION_ID) is None


async def test_unknown_email_exits(db):
    with pytest.raises(SystemExit):
        await find_user(db, "ghost@example.com")
