"""Access level resolution for notes.

Access is never stored; it is derived from the note's owner and share list
every time it is needed. The resolver works on anything shaped like a note
(ORM rows or response schemas): an ``owner_id`` and a ``shared_with``
sequence of entries carrying ``user_id`` and ``role``.
"""

from enum import Enum
from typing import Any, Iterable, Optional


class AccessLevel(str, Enum):
    """Permission tier an identity has on a note."""

    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"
    NONE = "none"


EDIT_LEVELS = frozenset({AccessLevel.OWNER, AccessLevel.EDITOR})


def resolve_access(note: Optional[Any], user_id: Optional[Any]) -> AccessLevel:
    """Return the access level ``user_id`` has on ``note``."""
    if note is None or user_id is None or user_id == "":
        return AccessLevel.NONE

    user_key = str(user_id)
    # owner wins even if a share entry exists for the same user
    if str(note.owner_id) == user_key:
        return AccessLevel.OWNER

    for entry in note.shared_with or ():
        if str(entry.user_id) == user_key:
            role = getattr(entry.role, "value", entry.role)
            return AccessLevel.EDITOR if role == AccessLevel.EDITOR.value else AccessLevel.VIEWER

    return AccessLevel.NONE


def has_access(note: Optional[Any], user_id: Optional[Any], allowed: Iterable[Any]) -> bool:
    """True when the resolved level is one of ``allowed`` (enum members or strings)."""
    level = resolve_access(note, user_id)
    allowed_values = {getattr(a, "value", a) for a in allowed}
    return level is not AccessLevel.NONE and level.value in allowed_values


def can_edit(level: Any) -> bool:
    """Owners and editors may change title and content."""
    try:
        return AccessLevel(level) in EDIT_LEVELS
    except ValueError:
        return False
