"""Pydantic schemas for user accounts.

Learn: UserRead is the only shape a user ever leaves the API in.
The password hash and the refresh-token list are simply not fields,
so they can't be serialized by accident.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class UserRead(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    role: str
    active: bool
    preferences: dict[str, Any] = Field(default_factory=dict)
    password_changed_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    """Profile update — only username and preferences are editable here."""
    username: Optional[str] = Field(
        None, min_length=3, max_length=20, pattern=r"^[a-zA-Z0-9_]+$"
    )
    preferences: Optional[dict[str, Any]] = None


class UserPage(BaseModel):
    results: int
    total: int
    total_pages: int
    current_page: int
    data: list[UserRead]

    model_config = {"from_attributes": True}
