"""
Note schemas.

``NoteResponse`` is the canonical JSON shape of a note, shared by the REST
API and the realtime protocol; ``access`` is added when the payload is
addressed to one identity.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..access import AccessLevel
from ..models.base import as_aware


class NoteCreate(BaseModel):
    """Note creation request schema."""

    title: str = Field(default="", description="Note title")
    content: str = Field(default="", description="Note content")


class NoteUpdate(BaseModel):
    """Partial update. Fields that are not text are ignored, not rejected."""

    title: Optional[Any] = Field(default=None, description="New title")
    content: Optional[Any] = Field(default=None, description="New content")

    model_config = ConfigDict(extra="ignore")

    def text_fields(self) -> Dict[str, str]:
        return text_fields(title=self.title, content=self.content)


def text_fields(**candidates: Any) -> Dict[str, str]:
    """Keep only the candidates that are strings."""
    return {key: value for key, value in candidates.items() if isinstance(value, str)}


class ShareEntry(BaseModel):
    """One entry of a note's share list."""

    user_id: uuid.UUID
    role: str
    email: Optional[str] = None
    name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class NoteResponse(BaseModel):
    """Full note representation."""

    id: uuid.UUID
    title: str
    content: str
    owner_id: uuid.UUID
    shared_with: List[ShareEntry] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return as_aware(v)


class NoteWithAccess(NoteResponse):
    """Note plus the access level of the identity it is addressed to."""

    access: AccessLevel


def note_payload(note: Any, access: AccessLevel) -> Dict[str, Any]:
    """JSON-ready note dict with the access level attached."""
    base = note if isinstance(note, NoteResponse) else NoteResponse.model_validate(note)
    return NoteWithAccess(**base.model_dump(exclude={"access"}), access=access).model_dump(mode="json")
