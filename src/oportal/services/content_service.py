"""Content service — CRUD, versioning and paginated queries over content.

Learn: Every read or write of a single record goes through the access
control policy first. Versioning is explicit, not a hidden hook:

  1. load the current record
  2. if the title or body actually changes, append a snapshot of the
     *current* title/body to previous_versions and bump version
  3. apply the new values and save

Metadata, tags or status changes never touch the version counter.

List queries layer a visibility clause on top of the caller's filters
(public OR authored-by-me OR personalized-for-me). Admins bypass it,
the same way they bypass it when reading a single record.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

import structlog

from oportal.db.models import (
    ROLE_ADMIN,
    Content,
    ContentAssociation,
    ContentTag,
    ContentVersion,
    User,
)
from oportal.db.stores import SORT_FIELDS, ContentQuery, ContentStore, UserStore, total_pages
from oportal.errors import InvalidAssociatedUsers, NotFoundError, ValidationError
from oportal.policy import (
    can_delete_content,
    can_manage_user,
    can_read_content,
    can_write_content,
    require,
)

logger = structlog.get_logger()

MAX_PAGE_SIZE = 100

# What `fields` may narrow a listing to. `id` is always returned.
SELECTABLE_FIELDS = frozenset({
    "id",
    "title",
    "body",
    "author",
    "status",
    "tags",
    "metadata",
    "is_personalized",
    "associated_users",
    "version",
    "previous_versions",
    "updated_by_id",
    "created_at",
    "updated_at",
})


def _unique(values: Iterable) -> list:
    """De-duplicate, keeping first-seen order."""
    return list(dict.fromkeys(values))


@dataclass
class ContentPage:
    """One page of a content listing."""

    results: int
    total: int
    total_pages: int
    current_page: int
    data: list[Content]
    fields: Optional[list[str]] = None  # None: every field


class ContentService:
    """Business logic for content records."""

    def __init__(self, contents: ContentStore, users: UserStore):
        self.contents = contents
        self.users = users

    # ─── Create ──────────────────────────────────────────

    async def create(
        self,
        actor: User,
        title: str,
        body: str,
        status: str = "draft",
        tags: Optional[list[str]] = None,
        metadata: Optional[dict[str, Any]] = None,
        is_personalized: bool = False,
        associated_users: Optional[list[uuid.UUID]] = None,
    ) -> Content:
        """Create a record authored by the actor."""
        # Every stored association must point at a live user, personalized or not
        associated = _unique(associated_users or [])
        await self._check_associated_users(associated)

        content = Content(
            title=title,
            body=body,
            status=status,
            meta=metadata or {},
            is_personalized=is_personalized,
            version=1,
            author_id=actor.id,
            author=actor,
            tag_rows=[ContentTag(tag=t) for t in _unique(tags or [])],
            associations=[ContentAssociation(user_id=u) for u in associated],
            previous_versions=[],
        )
        await self.contents.add(content)

        logger.info("content.created", content_id=str(content.id), author_id=str(actor.id))
        return content

    # ─── Read ────────────────────────────────────────────

    async def _load(self, content_id: uuid.UUID) -> Content:
        content = await self.contents.get(content_id)
        if not content:
            raise NotFoundError("Content not found")
        return content

    async def get(self, actor: User, content_id: uuid.UUID) -> Content:
        content = await self._load(content_id)
        require(
            can_read_content(actor, content),
            "You do not have permission to access this content",
        )
        return content

    # ─── Update ──────────────────────────────────────────

    async def update(
        self, actor: User, content_id: uuid.UUID, changes: dict[str, Any]
    ) -> Content:
        """Apply a partial update.

        `changes` only holds the fields the caller sent (title, body,
        status, tags, metadata, is_personalized, associated_users).
        """
        content = await self._load(content_id)
        require(
            can_write_content(actor, content, changes),
            "You do not have permission to update this content",
        )

        is_personalized = changes.get("is_personalized", content.is_personalized)
        if "associated_users" in changes:
            associated = _unique(changes["associated_users"] or [])
        else:
            associated = content.associated_users
        if is_personalized or "associated_users" in changes:
            await self._check_associated_users(associated)

        title = changes.get("title", content.title)
        body = changes.get("body", content.body)
        if title != content.title or body != content.body:
            content.previous_versions.append(
                ContentVersion(
                    version=content.version,
                    title=content.title,
                    body=content.body,
                    updated_by_id=actor.id,
                )
            )
            content.version += 1
            content.title = title
            content.body = body

        if "status" in changes:
            content.status = changes["status"]
        if "metadata" in changes:
            content.meta = changes["metadata"] or {}
        if "tags" in changes:
            content.tag_rows = [ContentTag(tag=t) for t in _unique(changes["tags"] or [])]
        if "is_personalized" in changes:
            content.is_personalized = is_personalized
        if "associated_users" in changes:
            content.associations = [ContentAssociation(user_id=u) for u in associated]

        content.updated_by_id = actor.id
        await self.contents.save(content)
        return content

    # ─── Delete ──────────────────────────────────────────

    async def delete(self, actor: User, content_id: uuid.UUID) -> None:
        """Permanently remove a record (author or admin)."""
        content = await self._load(content_id)
        require(
            can_delete_content(actor, content),
            "You do not have permission to delete this content",
        )
        await self.contents.delete(content)
        logger.info("content.deleted", content_id=str(content_id), actor_id=str(actor.id))

    # ─── Query ───────────────────────────────────────────

    async def query(
        self,
        actor: User,
        *,
        status: Optional[str] = None,
        tags: Optional[list[str]] = None,
        search: Optional[str] = None,
        personalized: Optional[bool] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        fields: Optional[list[str]] = None,
    ) -> ContentPage:
        """Filtered, visibility-scoped, paginated listing."""
        query = self._build_query(status, tags, search, personalized, sort, page, limit)
        selected = self._select_fields(fields)
        if actor.role != ROLE_ADMIN:
            query.viewer_id = actor.id
        return await self._page(query, selected)

    async def list_for_user(
        self,
        actor: User,
        target: Union[str, uuid.UUID],
        *,
        status: Optional[str] = None,
        tags: Optional[list[str]] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        fields: Optional[list[str]] = None,
    ) -> ContentPage:
        """Everything one author wrote. `target` is a user id or "me"."""
        if target == "me":
            target_id = actor.id
        else:
            try:
                target_id = uuid.UUID(str(target))
            except ValueError:
                raise ValidationError("Invalid user id")

        if target_id != actor.id and not await self.users.get(target_id):
            raise NotFoundError("User not found")
        require(
            can_manage_user(actor, target_id),
            "You do not have permission to view this user's content",
        )

        query = self._build_query(status, tags, search, None, sort, page, limit)
        selected = self._select_fields(fields)
        query.author_id = target_id
        return await self._page(query, selected)

    # ─── Helpers ─────────────────────────────────────────

    async def _check_associated_users(self, user_ids: list[uuid.UUID]) -> None:
        if not user_ids:
            return
        found = await self.users.count_active(user_ids)
        if found != len(user_ids):
            raise InvalidAssociatedUsers()

    @staticmethod
    def _build_query(
        status: Optional[str],
        tags: Optional[list[str]],
        search: Optional[str],
        personalized: Optional[bool],
        sort: Optional[str],
        page: int,
        limit: int,
    ) -> ContentQuery:
        if page < 1:
            raise ValidationError("Page must be a number greater than 0", code="invalid_pagination")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"Limit must be a number between 1 and {MAX_PAGE_SIZE}",
                code="invalid_pagination",
            )

        sort_keys = [key.strip() for key in (sort or "-created_at").split(",") if key.strip()]
        for key in sort_keys:
            if key.lstrip("-") not in SORT_FIELDS:
                raise ValidationError(f"Cannot sort by '{key.lstrip('-')}'")

        return ContentQuery(
            status=status,
            tags=_unique(tags or []),
            search=search.strip() if search and search.strip() else None,
            personalized=personalized,
            sort=sort_keys or ["-created_at"],
            page=page,
            limit=limit,
        )

    @staticmethod
    def _select_fields(fields: Optional[list[str]]) -> Optional[list[str]]:
        selected = _unique(name.strip() for name in fields or [] if name.strip())
        if not selected:
            return None
        for name in selected:
            if name not in SELECTABLE_FIELDS:
                raise ValidationError(f"Cannot select '{name}'")
        return _unique(["id", *selected])

    async def _page(
        self, query: ContentQuery, fields: Optional[list[str]] = None
    ) -> ContentPage:
        items, total = await self.contents.page(query)
        return ContentPage(
            results=len(items),
            total=total,
            total_pages=total_pages(total, query.limit),
            current_page=query.page,
            data=items,
            fields=fields,
        )
