"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic auto-generates migrations by comparing
these models to the actual DB.

Key concepts:
- UUID primary keys, generated in Python (portable across Postgres and SQLite)
- JSON columns (JSONB on Postgres) for opaque maps: preferences, metadata
- Python-side defaults so new rows are fully populated after flush —
  nothing has to be lazy-loaded later in an async session
- The password hash is a *deferred* column: it is only loaded when a
  store call explicitly asks for it (undefer), so ordinary reads never
  materialize the secret
- Tags, personalization allow-lists and the version log are child tables,
  so they can be filtered in SQL and paginated
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

ROLE_USER = "user"
ROLE_EDITOR = "editor"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_EDITOR, ROLE_ADMIN)

CONTENT_STATUSES = ("draft", "published", "archived")

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ══════════════════════════════════════════════════════════════
# Users
# ══════════════════════════════════════════════════════════════


class User(Base):
    """An account. Holds identity, hashed secret, role and refresh tokens.

    Learn: Users are never hard-deleted. Deactivation flips `active`
    to False and every store read excludes inactive users unless the
    caller passes include_inactive=True explicitly.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    username: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(
        String(255), nullable=False, deferred=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_USER)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    password_changed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # Oldest first; bounded by settings.refresh_token_limit
    refresh_tokens: Mapped[list[str]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    preferences: Mapped[dict[str, Any]] = mapped_column(
        "personalization_preferences", JSONType, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def password_changed_after(self, issued_at: float) -> bool:
        """True if the password changed after a token with this `iat` was issued."""
        changed = as_utc(self.password_changed_at)
        if changed is None:
            return False
        return issued_at < changed.timestamp()


# ══════════════════════════════════════════════════════════════
# Content
# ══════════════════════════════════════════════════════════════


class Content(Base):
    """A content record owned by its author.

    Learn: `version` starts at 1 and increments exactly once per
    title/body change. The previous title/body is kept in
    `previous_versions` (ContentVersion rows), appended by the
    content service right before it writes the new values.
    """

    __tablename__ = "contents"
    __table_args__ = (
        Index("idx_contents_author_created", "author_id", "created_at"),
        Index("idx_contents_created", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    # "metadata" is reserved on declarative classes, hence `meta`
    meta: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )
    is_personalized: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships: eager (selectin) so async code never lazy-loads
    author: Mapped["User"] = relationship(foreign_keys=[author_id], lazy="selectin")
    tag_rows: Mapped[list["ContentTag"]] = relationship(
        back_populates="content",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    associations: Mapped[list["ContentAssociation"]] = relationship(
        back_populates="content",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    previous_versions: Mapped[list["ContentVersion"]] = relationship(
        back_populates="content",
        cascade="all, delete-orphan",
        order_by="ContentVersion.version",
        lazy="selectin",
    )

    @property
    def tags(self) -> list[str]:
        return [row.tag for row in self.tag_rows]

    @property
    def associated_users(self) -> list[uuid.UUID]:
        return [row.user_id for row in self.associations]


class ContentTag(Base):
    """One tag on one content record (tags are filtered with any-of)."""

    __tablename__ = "content_tags"
    __table_args__ = (
        Index("idx_content_tags_tag", "tag"),
        Index("idx_content_tags_content", "content_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("contents.id", ondelete="CASCADE"), nullable=False
    )
    tag: Mapped[str] = mapped_column(String(100), nullable=False)

    content: Mapped["Content"] = relationship(back_populates="tag_rows")


class ContentAssociation(Base):
    """A user allowed to see a personalized content record."""

    __tablename__ = "content_associated_users"
    __table_args__ = (
        Index("idx_content_assoc_user", "user_id"),
        Index("idx_content_assoc_content", "content_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("contents.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )

    content: Mapped["Content"] = relationship(back_populates="associations")


class ContentVersion(Base):
    """Append-only snapshot of a content record's title/body before a change.

    Learn: `version` is the version number the snapshot *was* — the
    record itself moves on to version + 1.
    """

    __tablename__ = "content_versions"
    __table_args__ = (
        Index("idx_content_versions_content", "content_id", "version"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("contents.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )

    content: Mapped["Content"] = relationship(back_populates="previous_versions")
