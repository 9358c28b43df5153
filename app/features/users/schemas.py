"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field


class UserUpdate(BaseModel):
    """Schema for updating user information."""
    name: str | None = Field(None, min_length=1, max_length=255)


class UserResponse(BaseModel):
    """Schema for user responses."""
    id: str
    email: str
    name: str
    is_active: bool
    last_login_at: datetime | None = None
    current_organization_id: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
