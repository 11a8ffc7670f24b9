"""Content authoring endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from trustgate.api.v1.dependencies import CurrentUserDep, GovernanceDep, SessionDep
from trustgate.core.errors import NotFoundError
from trustgate.models.content import CONTENT_STATUS_PUBLISHED
from trustgate.schemas import ContentCreate, ContentResponse

router = APIRouter(prefix="/content", tags=["content"])


@router.post("", response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
async def create_content(
    payload: ContentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> ContentResponse:
    """Create a draft content item with its first version."""
    item = governance.content.create(db, current_user, payload.title, payload.body)
    return ContentResponse.model_validate(item)


@router.post("/{content_id}/revisions", response_model=ContentResponse)
async def revise_content(
    content_id: int,
    payload: ContentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> ContentResponse:
    """Append a new version to the author's content."""
    item = governance.content.revise(db, current_user, content_id, payload.title, payload.body)
    return ContentResponse.model_validate(item)


@router.get("/{content_id}", response_model=ContentResponse)
async def get_content(
    content_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> ContentResponse:
    """Published content is visible to everyone, anything else to its author and staff."""
    item = governance.content.get(db, content_id)
    visible = (
        item.status == CONTENT_STATUS_PUBLISHED
        or item.author_id == current_user.id
        or current_user.is_staff
    )
    if not visible:
        raise NotFoundError("Content not found")
    return ContentResponse.model_validate(item)
