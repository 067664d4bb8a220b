"""
Database models for NoteSync.

Models included:
    - User: account with email/password authentication
    - Note: title and content owned by one user
    - NoteShare: viewer/editor grant of a note to another user
"""

from .base import BaseModel
from .note import Note
from .share import NoteShare, ShareRole
from .user import User

__all__ = [
    "BaseModel",
    "User",
    "Note",
    "NoteShare",
    "ShareRole",
]
