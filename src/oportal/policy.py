"""Access control policy — pure allow/deny decisions.

Learn: Nothing here touches the database or raises on its own. Each
function answers one question about (actor, resource); callers wrap
the answer in require() so a denial always surfaces as a 403 instead
of being silently filtered out.

Roles are not a strict hierarchy. Admin can do everything; editors
may edit anyone's content but not delete it or change who can see it.
"""

import uuid
from typing import Any, Mapping, Optional

from oportal.db.models import ROLE_ADMIN, ROLE_EDITOR, Content, User
from oportal.errors import ForbiddenError

PERSONALIZATION_FIELDS = frozenset({"is_personalized", "associated_users"})


def is_author(actor: User, content: Content) -> bool:
    return content.author_id == actor.id


def can_read_content(actor: User, content: Content) -> bool:
    return (
        not content.is_personalized
        or is_author(actor, content)
        or actor.id in content.associated_users
        or actor.role == ROLE_ADMIN
    )


def touches_personalization(changes: Mapping[str, Any]) -> bool:
    """True if an update sets who may see a record."""
    return any(key in changes for key in PERSONALIZATION_FIELDS)


def can_write_content(
    actor: User, content: Content, changes: Optional[Mapping[str, Any]] = None
) -> bool:
    if not (is_author(actor, content) or actor.role in (ROLE_ADMIN, ROLE_EDITOR)):
        return False
    if changes and touches_personalization(changes):
        return actor.role == ROLE_ADMIN
    return True


def can_delete_content(actor: User, content: Content) -> bool:
    return is_author(actor, content) or actor.role == ROLE_ADMIN


def can_manage_user(actor: User, target_id: uuid.UUID) -> bool:
    return actor.id == target_id or actor.role == ROLE_ADMIN


def require(allowed: bool, message: Optional[str] = None) -> None:
    """Deny by default: anything but an explicit True is a 403."""
    if allowed is not True:
        raise ForbiddenError(message)
