"""Stores — the only code that talks to the database.

Learn: Services receive a store instance in their constructor instead of
reaching for a global model. Every read that could return a deactivated
user takes `include_inactive` as an explicit argument; nothing filters
inactive users behind the caller's back.

Each write is a single commit (one document, one round-trip). Database
faults never escape as SQLAlchemy exceptions: integrity violations become
ConflictError, everything else becomes InternalError.
"""

import math
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from oportal.db.models import Content, ContentAssociation, ContentTag, User
from oportal.errors import ConflictError, InternalError


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


class _Store:
    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _guard(self, action: str):
        """Translate database faults into domain errors."""
        try:
            yield
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError() from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise InternalError(f"Store failure during {action}: {e}") from e

    async def _commit(self, action: str) -> None:
        async with self._guard(action):
            await self.session.commit()


# ═══════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════


class UserStore(_Store):
    """Credential store: users, hashed secrets, outstanding refresh tokens."""

    def _select(self, include_inactive: bool, with_secret: bool) -> Select:
        q = select(User)
        if not include_inactive:
            q = q.where(User.active.is_(True))
        if with_secret:
            # populate_existing: the user may already sit in the identity
            # map without its (deferred) hash
            q = q.options(undefer(User.password_hash)).execution_options(
                populate_existing=True
            )
        return q

    async def get(
        self,
        user_id: uuid.UUID,
        *,
        include_inactive: bool = False,
        with_secret: bool = False,
    ) -> Optional[User]:
        q = self._select(include_inactive, with_secret).where(User.id == user_id)
        async with self._guard("get_user"):
            result = await self.session.execute(q)
        return result.scalars().first()

    async def find_by_email(
        self,
        email: str,
        *,
        include_inactive: bool = False,
        with_secret: bool = False,
    ) -> Optional[User]:
        q = self._select(include_inactive, with_secret).where(User.email == email)
        async with self._guard("find_user_by_email"):
            result = await self.session.execute(q)
        return result.scalars().first()

    async def find_conflicts(self, email: str, username: str) -> list[tuple[str, str]]:
        """(email, username) of every account — active or not — using either value.

        One combined query; the unique constraints cover deactivated
        accounts too, so they must be seen here.
        """
        q = select(User.email, User.username).where(
            or_(User.email == email, User.username == username)
        )
        async with self._guard("find_conflicts"):
            result = await self.session.execute(q)
        return [(row.email, row.username) for row in result.all()]

    async def username_taken(
        self, username: str, exclude_id: Optional[uuid.UUID] = None
    ) -> bool:
        q = select(User.id).where(User.username == username)
        if exclude_id is not None:
            q = q.where(User.id != exclude_id)
        async with self._guard("username_taken"):
            result = await self.session.execute(q.limit(1))
        return result.first() is not None

    async def count_active(self, user_ids: Iterable[uuid.UUID]) -> int:
        ids = set(user_ids)
        if not ids:
            return 0
        q = (
            select(func.count())
            .select_from(User)
            .where(User.id.in_(ids), User.active.is_(True))
        )
        async with self._guard("count_users"):
            result = await self.session.execute(q)
        return result.scalar_one()

    async def list_users(
        self,
        *,
        search: Optional[str] = None,
        role: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        include_inactive: bool = False,
    ) -> tuple[list[User], int]:
        clauses = []
        if not include_inactive:
            clauses.append(User.active.is_(True))
        if search:
            clauses.append(
                or_(
                    User.username.icontains(search, autoescape=True),
                    User.email.icontains(search, autoescape=True),
                )
            )
        if role:
            clauses.append(User.role == role)

        q = (
            select(User)
            .where(*clauses)
            .order_by(User.created_at.desc(), User.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        count_q = select(func.count()).select_from(User).where(*clauses)
        async with self._guard("list_users"):
            items = list((await self.session.execute(q)).scalars().all())
            total = (await self.session.execute(count_q)).scalar_one()
        return items, total

    async def add(self, user: User) -> User:
        self.session.add(user)
        await self._commit("add_user")
        return user

    async def save(self, user: User) -> User:
        await self._commit("save_user")
        return user

    # ─── Refresh tokens ──────────────────────────────────

    async def add_refresh_token(self, user: User, token: str, limit: int) -> None:
        """Append a token, evicting the oldest ones beyond `limit` (FIFO)."""
        tokens = [t for t in user.refresh_tokens if t != token]
        tokens.append(token)
        user.refresh_tokens = tokens[-limit:]
        await self._commit("add_refresh_token")

    async def remove_refresh_token(self, user: User, token: str) -> None:
        user.refresh_tokens = [t for t in user.refresh_tokens if t != token]
        await self._commit("remove_refresh_token")

    async def clear_refresh_tokens(self, user: User) -> None:
        user.refresh_tokens = []
        await self._commit("clear_refresh_tokens")


# ═══════════════════════════════════════════════════════════
# Content
# ═══════════════════════════════════════════════════════════

SORT_FIELDS = {
    "created_at": Content.created_at,
    "updated_at": Content.updated_at,
    "title": Content.title,
    "version": Content.version,
}


@dataclass
class ContentQuery:
    """Filters for a paginated content listing.

    Learn: `viewer_id` switches on the visibility clause — public
    records, the viewer's own, and personalized records that list the
    viewer. None means "no visibility restriction" (admins, or a
    listing already scoped to one author).
    """

    status: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    search: Optional[str] = None
    personalized: Optional[bool] = None
    author_id: Optional[uuid.UUID] = None
    viewer_id: Optional[uuid.UUID] = None
    sort: list[str] = field(default_factory=lambda: ["-created_at"])
    page: int = 1
    limit: int = 10


class ContentStore(_Store):
    """Content records with their tags, allow-lists and version log."""

    async def get(self, content_id: uuid.UUID) -> Optional[Content]:
        async with self._guard("get_content"):
            result = await self.session.execute(
                select(Content).where(Content.id == content_id)
            )
        return result.scalars().first()

    async def add(self, content: Content) -> Content:
        self.session.add(content)
        await self._commit("add_content")
        return content

    async def save(self, content: Content) -> Content:
        await self._commit("save_content")
        return content

    async def delete(self, content: Content) -> None:
        async with self._guard("delete_content"):
            await self.session.delete(content)
        await self._commit("delete_content")

    async def page(self, query: ContentQuery) -> tuple[list[Content], int]:
        """Return one page of matching records and the total match count."""
        clauses = self._predicate(query)

        q = select(Content).where(*clauses)
        for key in query.sort:
            column = SORT_FIELDS[key.lstrip("-")]
            q = q.order_by(column.desc() if key.startswith("-") else column.asc())
        q = q.order_by(Content.id).offset((query.page - 1) * query.limit).limit(
            query.limit
        )
        count_q = select(func.count()).select_from(Content).where(*clauses)

        async with self._guard("query_content"):
            items = list((await self.session.execute(q)).scalars().all())
            total = (await self.session.execute(count_q)).scalar_one()
        return items, total

    @staticmethod
    def _predicate(query: ContentQuery) -> list:
        clauses = []
        if query.status:
            clauses.append(Content.status == query.status)
        if query.tags:
            clauses.append(
                Content.id.in_(
                    select(ContentTag.content_id).where(ContentTag.tag.in_(query.tags))
                )
            )
        if query.search:
            for term in query.search.split():
                clauses.append(
                    or_(
                        Content.title.icontains(term, autoescape=True),
                        Content.body.icontains(term, autoescape=True),
                    )
                )
        if query.personalized is not None:
            clauses.append(Content.is_personalized.is_(query.personalized))
        if query.author_id is not None:
            clauses.append(Content.author_id == query.author_id)
        if query.viewer_id is not None:
            clauses.append(
                or_(
                    Content.is_personalized.is_(False),
                    Content.author_id == query.viewer_id,
                    Content.id.in_(
                        select(ContentAssociation.content_id).where(
                            ContentAssociation.user_id == query.viewer_id
                        )
                    ),
                )
            )
        return clauses
