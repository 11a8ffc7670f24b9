# src/trustgate/schemas/content.py
"""Content-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ContentCreate(BaseModel):
    """Schema for creating or revising content."""

    title: str | None = Field(None, max_length=300, description="Optional title")
    body: str = Field(..., max_length=100_000, description="Full text of the content")


class ContentVersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    number: int
    title: str | None
    body: str
    created_at: datetime


class ContentResponse(BaseModel):
    """Schema for content information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: int
    status: str
    created_at: datetime
    current_version: ContentVersionResponse | None
