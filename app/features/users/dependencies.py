"""
FastAPI dependencies for authentication.
"""
from typing import Annotated, Optional
from datetime import datetime, timezone
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.errors import Forbidden, Unauthenticated
from app.features.users.models import User
from app.features.users.auth import Principal, verify_jwt_token, get_appwrite_user


# auto_error=False: a missing header is "no principal", reported by the
# context builder as Unauthenticated (401) rather than HTTPBearer's 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Optional[User]:
    """
    Get the current authenticated user from JWT token, or None without one.

    This dependency:
    1. Extracts JWT from Authorization header
    2. Verifies JWT with Appwrite
    3. Looks up or creates user in local database
    4. Updates last_login_at timestamp
    """
    if credentials is None:
        return None

    payload = verify_jwt_token(credentials.credentials)
    appwrite_user_id = payload.get("userId")

    if not appwrite_user_id:
        raise Unauthenticated("Invalid token payload")

    result = await db.execute(
        select(User).where(User.appwrite_id == appwrite_user_id)
    )
    user = result.scalar_one_or_none()

    now = datetime.now(timezone.utc)

    # If user doesn't exist locally, fetch from Appwrite and create
    if user is None:
        appwrite_user = await get_appwrite_user(appwrite_user_id)

        user = User(
            appwrite_id=appwrite_user_id,
            email=appwrite_user.get("email", ""),
            name=appwrite_user.get("name", "Unknown"),
            last_login_at=now,
        )
        db.add(user)
    else:
        user.last_login_at = now

    await db.commit()
    await db.refresh(user)

    if not user.is_active:
        raise Forbidden("User account is deactivated")

    return user


async def get_current_principal(
    user: Annotated[Optional[User], Depends(get_current_user)]
) -> Optional[Principal]:
    """Identity resolver: the request's principal, or None when unauthenticated."""
    if user is None:
        return None
    return Principal(user_id=user.id, email=user.email)


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"
