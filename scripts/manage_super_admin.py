"""
Grant or revoke platform-wide SuperAdmin.

SuperAdmin is a binding to the reserved sentinel organization and is never
assignable through the API; this script is the only way to manage it.

Usage:
    uv run python -m scripts.manage_super_admin grant admin@example.com
    uv run python -m scripts.manage_super_admin revoke admin@example.com
"""
import argparse
import asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db, init_db
from app.features.organizations.store import grant_super_admin, revoke_super_admin
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


async def find_user(db: AsyncSession, email: str) -> User:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalars().first()
    if user is None:
        raise SystemExit(f"No user with email {email!r}; the user must sign in once first")
    return user


async def main(command: str, email: str):
    await init_db()

    async for db in get_db():
        user = await find_user(db, email)
        if command == "grant":
            binding = await grant_super_admin(db, user.id)
            log.info("User %s is SuperAdmin (binding %s)", email, binding.id)
        else:
            revoked = await revoke_super_admin(db, user.id)
            if revoked:
                log.info("Revoked SuperAdmin from %s", email)
            else:
                log.info("User %s was not SuperAdmin", email)
        break  # Only use first session


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("command", choices=["grant", "revoke"])
    parser.add_argument("email", help="email of an existing user")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    asyncio.run(main(args.command, args.email))
