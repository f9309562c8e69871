"""Content API routes.

Learn: Routes just translate HTTP to ContentService calls. Access
control, versioning and pagination rules all live in the service, so
page/limit are passed through untouched and rejected there
(400 invalid_pagination), not by FastAPI's Query bounds.

Key patterns:
- `tags` is comma separated (`?tags=a,b` matches either tag)
- `fields` narrows each listed record to the named fields (plus `id`);
  the page envelope is always complete
- PATCH sends only the fields to change; `exclude_unset` keeps
  "not sent" distinct from "sent as empty"
- `/content/me` and `/content/user/{id}` are declared before
  `/content/{content_id}`
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from oportal.auth.dependencies import get_current_user
from oportal.db.engine import get_db
from oportal.db.models import User
from oportal.db.stores import ContentStore, UserStore
from oportal.schemas.content import (
    ContentCreate,
    ContentPageRead,
    ContentRead,
    ContentStatus,
    ContentUpdate,
)
from oportal.services.content_service import ContentPage, ContentService

router = APIRouter(prefix="/content")


def _content_svc(db: AsyncSession = Depends(get_db)) -> ContentService:
    return ContentService(ContentStore(db), UserStore(db))


def _split_csv(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def _render_page(result: ContentPage) -> dict:
    """Serialize a listing, keeping only the selected fields of each record."""
    page = ContentPageRead.model_validate(result)
    if not result.fields:
        return page.model_dump(mode="json")
    return page.model_dump(
        mode="json",
        include={
            "results": True,
            "total": True,
            "total_pages": True,
            "current_page": True,
            "data": {"__all__": set(result.fields)},
        },
    )


# ═══════════════════════════════════════════════════════════
# Listings
# ═══════════════════════════════════════════════════════════


@router.get("", response_model=None, responses={200: {"model": ContentPageRead}})
async def list_content(
    status: Optional[ContentStatus] = Query(None),
    tags: Optional[str] = Query(None, description="Comma separated, matches any"),
    search: Optional[str] = Query(None, description="Every term must match title or body"),
    personalized: Optional[bool] = Query(None),
    sort: Optional[str] = Query(None, description="e.g. -created_at,title"),
    page: int = Query(1),
    limit: int = Query(10),
    fields: Optional[str] = Query(None, description="Comma separated, e.g. title,status"),
    user: User = Depends(get_current_user),
    svc: ContentService = Depends(_content_svc),
):
    """Everything the caller may see: public, their own, or personalized for them."""
    result = await svc.query(
        user,
        status=status,
        tags=_split_csv(tags),
        search=search,
        personalized=personalized,
        sort=sort,
        page=page,
        limit=limit,
        fields=_split_csv(fields),
    )
    return _render_page(result)


@router.get("/me", response_model=None, responses={200: {"model": ContentPageRead}})
async def list_my_content(
    status: Optional[ContentStatus] = Query(None),
    tags: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(10),
    fields: Optional[str] = Query(None, description="Comma separated, e.g. title,status"),
    user: User = Depends(get_current_user),
    svc: ContentService = Depends(_content_svc),
):
    result = await svc.list_for_user(
        user, "me",
        status=status, tags=_split_csv(tags), search=search,
        sort=sort, page=page, limit=limit, fields=_split_csv(fields),
    )
    return _render_page(result)


@router.get("/user/{user_id}", response_model=None, responses={200: {"model": ContentPageRead}})
async def list_user_content(
    user_id: str,
    status: Optional[ContentStatus] = Query(None),
    tags: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(10),
    fields: Optional[str] = Query(None, description="Comma separated, e.g. title,status"),
    user: User = Depends(get_current_user),
    svc: ContentService = Depends(_content_svc),
):
    """Content authored by one user (self or admin)."""
    result = await svc.list_for_user(
        user, user_id,
        status=status, tags=_split_csv(tags), search=search,
        sort=sort, page=page, limit=limit, fields=_split_csv(fields),
    )
    return _render_page(result)


# ═══════════════════════════════════════════════════════════
# Single records
# ═══════════════════════════════════════════════════════════


@router.post("", response_model=ContentRead, status_code=201)
async def create_content(
    body: ContentCreate,
    user: User = Depends(get_current_user),
    svc: ContentService = Depends(_content_svc),
):
    return await svc.create(
        user,
        title=body.title,
        body=body.body,
        status=body.status,
        tags=body.tags,
        metadata=body.metadata,
        is_personalized=body.is_personalized,
        associated_users=body.associated_users,
    )


@router.get("/{content_id}", response_model=ContentRead)
async def get_content(
    content_id: uuid.UUID,
    user: User = Depends(get_current_user),
    svc: ContentService = Depends(_content_svc),
):
    return await svc.get(user, content_id)


@router.patch("/{content_id}", response_model=ContentRead)
async def update_content(
    content_id: uuid.UUID,
    body: ContentUpdate,
    user: User = Depends(get_current_user),
    svc: ContentService = Depends(_content_svc),
):
    """Partial update. A title/body change snapshots the previous version."""
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    return await svc.update(user, content_id, changes)


@router.delete("/{content_id}", status_code=204)
async def delete_content(
    content_id: uuid.UUID,
    user: User = Depends(get_current_user),
    svc: ContentService = Depends(_content_svc),
):
    await svc.delete(user, content_id)
    return Response(status_code=204)
