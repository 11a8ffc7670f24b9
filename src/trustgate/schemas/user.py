# src/trustgate/schemas/user.py
"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """Schema for user information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    display_name: str | None
    role: str
    created_at: datetime
