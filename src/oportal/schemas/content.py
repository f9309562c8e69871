"""Pydantic schemas for content records.

Learn: Separate schemas for create/update/read keeps the API clean.
- ContentCreate: what you POST to create a record
- ContentUpdate: what you PATCH (all optional; only sent fields apply)
- ContentRead: what the API returns, including the version log
"""

import uuid
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field

ContentStatus = Literal["draft", "published", "archived"]


class ContentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    body: str = Field(..., min_length=1)
    status: ContentStatus = "draft"
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_personalized: bool = False
    associated_users: list[uuid.UUID] = Field(default_factory=list)


class ContentUpdate(BaseModel):
    """Partial update — fields left out (or null) are not touched."""
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    body: Optional[str] = Field(None, min_length=1)
    status: Optional[ContentStatus] = None
    tags: Optional[list[str]] = None
    metadata: Optional[dict[str, Any]] = None
    is_personalized: Optional[bool] = None
    associated_users: Optional[list[uuid.UUID]] = None


class AuthorRead(BaseModel):
    id: uuid.UUID
    username: str

    model_config = {"from_attributes": True}


class ContentVersionRead(BaseModel):
    version: int
    title: str
    body: str
    updated_at: datetime
    updated_by_id: Optional[uuid.UUID] = None

    model_config = {"from_attributes": True}


class ContentRead(BaseModel):
    id: uuid.UUID
    title: str
    body: str
    author: AuthorRead
    status: str
    tags: list[str]
    # ORM attribute is `meta`; already-serialized input uses "metadata"
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("meta", "metadata")
    )
    is_personalized: bool
    associated_users: list[uuid.UUID]
    version: int
    previous_versions: list[ContentVersionRead]
    updated_by_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ContentPageRead(BaseModel):
    results: int
    total: int
    total_pages: int
    current_page: int
    data: list[ContentRead]

    model_config = {"from_attributes": True}
