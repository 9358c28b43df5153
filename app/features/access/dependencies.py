"""
FastAPI dependencies for route protection.

Every guard resolves the context fresh for the request; role changes and
revocations apply on the next request.
"""
from typing import Annotated, Optional
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.errors import ConfigurationError
from app.features.access.context import (
    UserContext,
    resolve_context,
    check_page_access,
    check_invite_permission,
    check_super_admin,
)
from app.features.access.matrix import PermissionMatrix
from app.features.users.auth import Principal
from app.features.users.dependencies import get_current_principal, get_current_user
from app.features.users.models import User


def get_permission_matrix(request: Request) -> PermissionMatrix:
    """The process-wide matrix built at startup (see app.main)."""
    matrix = getattr(request.app.state, "permission_matrix", None)
    if matrix is None:
        raise ConfigurationError("Permission matrix is not loaded")
    return matrix


async def require_auth(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Optional[Principal], Depends(get_current_principal)],
    user: Annotated[Optional[User], Depends(get_current_user)],
) -> UserContext:
    """
    Require an authenticated principal with a usable binding.

    Usage:
        @router.get("/me")
        async def me(context: UserContext = Depends(require_auth)):
            ...
    """
    preferred = user.current_organization_id if user is not None else None
    return await resolve_context(db, principal, preferred)


def require_page_access(key: str):
    """
    FastAPI dependency factory requiring access to a page or action.

    Usage:
        @router.get("/students")
        async def list_students(
            context: UserContext = Depends(require_page_access("/students"))
        ):
            ...

    Raises:
        Unauthenticated: no usable principal (401)
        Forbidden: role not in the page's allow-set (403)
        ConfigurationError: key missing from the matrix (500)
    """
    async def page_access_dependency(
        context: Annotated[UserContext, Depends(require_auth)],
        matrix: Annotated[PermissionMatrix, Depends(get_permission_matrix)],
    ) -> UserContext:
        return check_page_access(matrix, context, key)

    return page_access_dependency


async def require_invite_permission(
    context: Annotated[UserContext, Depends(require_auth)]
) -> UserContext:
    return check_invite_permission(context)


async def require_super_admin(
    context: Annotated[UserContext, Depends(require_auth)]
) -> UserContext:
    return check_super_admin(context)
