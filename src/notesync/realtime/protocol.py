"""
Realtime wire protocol.

Every frame is a JSON object ``{"event": <name>, "data": {...}}`` in both
directions. Client payloads use ``noteId`` for the note reference.
"""

import json
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..core.schemas.notes import text_fields

# client -> server
JOIN_NOTE = "join_note"
LEAVE_NOTE = "leave_note"
CLIENT_NOTE_UPDATE = "client_note_update"

# server -> client
SERVER_NOTE_INIT = "server_note_init"
SERVER_NOTE_UPDATE = "server_note_update"
ERROR_MESSAGE = "error_message"

CLIENT_EVENTS = frozenset({JOIN_NOTE, LEAVE_NOTE, CLIENT_NOTE_UPDATE})
SERVER_EVENTS = frozenset({SERVER_NOTE_INIT, SERVER_NOTE_UPDATE, ERROR_MESSAGE})


class ProtocolError(ValueError):
    """Frame is not a valid envelope."""


class Envelope(BaseModel):
    event: str
    data: Dict[str, Any] = Field(default_factory=dict)


class NoteRef(BaseModel):
    """Payload of join_note and leave_note."""

    note_id: Optional[Any] = Field(default=None, alias="noteId")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def key(self) -> Optional[str]:
        """The note id as text, None when absent or blank."""
        if self.note_id is None:
            return None
        value = str(self.note_id).strip()
        return value or None


class NoteUpdateMessage(NoteRef):
    """Payload of client_note_update. Non-text fields are ignored."""

    title: Optional[Any] = None
    content: Optional[Any] = None

    def text_fields(self) -> Dict[str, str]:
        return text_fields(title=self.title, content=self.content)


def encode(event: str, data: Optional[Dict[str, Any]] = None) -> str:
    return json.dumps({"event": event, "data": data or {}}, ensure_ascii=False)


def decode(raw: Union[str, bytes, None]) -> Envelope:
    """Parse one frame into an envelope."""
    if raw is None:
        raise ProtocolError("Empty frame")
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"Frame is not JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise ProtocolError("Frame must be a JSON object")
    if payload.get("data") is None:
        payload["data"] = {}
    try:
        return Envelope.model_validate(payload)
    except PydanticValidationError as exc:
        raise ProtocolError(f"Malformed envelope: {exc.errors()[0]['msg']}") from exc


def error_payload(message: str) -> Dict[str, str]:
    return {"message": message}
