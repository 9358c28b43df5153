"""
User feature routes.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.errors import Unauthenticated
from app.features.users.models import User
from app.features.users.schemas import UserResponse, UserUpdate
from app.features.users.dependencies import get_current_user


router = APIRouter(tags=["users"])


def _require_user(user: Optional[User]) -> User:
    if user is None:
        raise Unauthenticated("Unauthorized - User not authenticated")
    return user


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    user: Annotated[Optional[User], Depends(get_current_user)]
):
    """Get current authenticated user's profile."""
    return _require_user(user)


@router.patch("/me", response_model=UserResponse)
async def update_current_user_profile(
    update_data: UserUpdate,
    user: Annotated[Optional[User], Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update current user's profile."""
    user = _require_user(user)
    if update_data.name is not None:
        user.name = update_data.name

    await db.commit()
    await db.refresh(user)
    return user
