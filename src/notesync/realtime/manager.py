"""
Collaboration room manager.

Handles the join / leave / update / disconnect lifecycle of realtime
connections. Each event opens its own repository scope, runs to completion
and then fans the fresh note out to the room.

Join failures are reported to the requester as ``error_message``. Update
failures are never reported to the sender; they go to the
``on_dropped_update`` hook instead (logged at WARNING by default).
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Callable, List, Optional

from ..config import Settings, get_settings
from ..core.access import AccessLevel, can_edit, resolve_access
from ..core.repositories.note_repository import NoteRepository, coerce_uuid
from ..core.schemas.notes import NoteResponse, note_payload, text_fields
from . import protocol
from .rooms import Connection, RoomRegistry

logger = logging.getLogger(__name__)

RepositoryScope = Callable[[], AsyncContextManager[NoteRepository]]
DroppedUpdateHook = Callable[[Connection, Optional[str], str], None]

NOTE_NOT_FOUND = "Note not found"
NO_ACCESS = "No access to this note"
JOIN_FAILED = "Join failed"


def session_repositories(session_factory) -> RepositoryScope:
    """Repository scope backed by a fresh AsyncSession per event."""

    @asynccontextmanager
    async def scope() -> AsyncIterator[NoteRepository]:
        async with session_factory() as session:
            yield NoteRepository(session)

    return scope


def room_key(note_id: Any) -> Optional[str]:
    """Canonical room name for a note id; None when the id is missing."""
    if note_id is None:
        return None
    parsed = coerce_uuid(note_id)
    if parsed is not None:
        return str(parsed)
    value = str(note_id).strip()
    return value or None


def log_dropped_update(connection: Connection, note_id: Optional[str], reason: str) -> None:
    logger.warning(
        "Dropped note update",
        extra={
            "connection_id": connection.id,
            "user_id": connection.identity.id,
            "note_id": note_id,
            "reason": reason,
        },
    )


class CollaborationManager:
    """Room lifecycle on top of an injected RoomRegistry."""

    def __init__(
        self,
        registry: RoomRegistry,
        repositories: RepositoryScope,
        settings: Optional[Settings] = None,
        relay=None,
        on_dropped_update: Optional[DroppedUpdateHook] = None,
    ):
        self.registry = registry
        self.repositories = repositories
        self.settings = settings or get_settings()
        self.relay = relay
        self.on_dropped_update = on_dropped_update or log_dropped_update

    async def handle_event(self, connection: Connection, envelope: protocol.Envelope) -> None:
        """Dispatch one client frame."""
        event = envelope.event
        if event == protocol.JOIN_NOTE:
            message = protocol.NoteRef.model_validate(envelope.data)
            await self.join(connection, message.key)
        elif event == protocol.LEAVE_NOTE:
            message = protocol.NoteRef.model_validate(envelope.data)
            self.leave(connection, message.key)
        elif event == protocol.CLIENT_NOTE_UPDATE:
            message = protocol.NoteUpdateMessage.model_validate(envelope.data)
            await self.update(connection, message.key, **message.text_fields())
        else:
            logger.debug("Ignoring unknown event %r from %s", event, connection.id)

    async def join(self, connection: Connection, note_id: Any) -> None:
        """Subscribe to a note's room and send the current state to the requester."""
        key = room_key(note_id)
        try:
            async with self.repositories() as repo:
                note = await repo.get_by_id(key) if key else None
                if note is None:
                    await connection.send_event(
                        protocol.ERROR_MESSAGE, protocol.error_payload(NOTE_NOT_FOUND)
                    )
                    return

                access = resolve_access(note, connection.identity.id)
                if access is AccessLevel.NONE:
                    await connection.send_event(
                        protocol.ERROR_MESSAGE, protocol.error_payload(NO_ACCESS)
                    )
                    return
                snapshot = NoteResponse.model_validate(note)
        except Exception:
            logger.exception("Join failed for note %s", key)
            await connection.send_event(
                protocol.ERROR_MESSAGE, protocol.error_payload(JOIN_FAILED)
            )
            return

        key = str(snapshot.id)
        if self.registry.add(key, connection):
            logger.info("User %s joined note %s", connection.identity.id, key)
        await connection.send_event(protocol.SERVER_NOTE_INIT, note_payload(snapshot, access))

    def leave(self, connection: Connection, note_id: Any) -> None:
        key = room_key(note_id)
        if key and self.registry.remove(key, connection):
            logger.info("User %s left note %s", connection.identity.id, key)

    async def update(
        self,
        connection: Connection,
        note_id: Any,
        title: Any = None,
        content: Any = None,
    ) -> None:
        """Apply a patch from an owner or editor and broadcast the saved note."""
        key = room_key(note_id)
        if key is None:
            self.on_dropped_update(connection, None, "missing note id")
            return

        changes = text_fields(title=title, content=content)
        try:
            async with self.repositories() as repo:
                note = await repo.get_by_id(key)
                if note is None:
                    self.on_dropped_update(connection, key, "note not found")
                    return

                access = resolve_access(note, connection.identity.id)
                if not can_edit(access):
                    self.on_dropped_update(connection, key, f"access {access.value}")
                    return

                note = await repo.update_note(note.id, changes)
                snapshot = NoteResponse.model_validate(note)
        except Exception as exc:
            self.on_dropped_update(connection, key, f"repository error: {exc}")
            return

        await self.publish_note(snapshot, access)

    def disconnect(self, connection: Connection) -> List[str]:
        """Implicit leave from every room. Nothing is broadcast."""
        left = self.registry.remove_everywhere(connection)
        logger.debug("Connection %s disconnected, left %s", connection.id, left)
        return left

    async def publish_note(self, note: Any, sender_access: AccessLevel) -> int:
        """Broadcast an already persisted note to its room (and the relay)."""
        snapshot = _as_response(note)
        delivered = await self.deliver_local(snapshot, sender_access)

        if self.relay is not None:
            try:
                await self.relay.publish(snapshot, sender_access)
            except Exception as exc:
                logger.warning("Relay publish failed for note %s: %s", snapshot.id, exc)
        return delivered

    async def deliver_local(self, note: Any, sender_access: AccessLevel) -> int:
        """Send server_note_update to the members connected to this process."""
        snapshot = _as_response(note)
        key = str(snapshot.id)
        sender_access = AccessLevel(sender_access)
        revoked: List[Connection] = []

        def build(member: Connection):
            if self.settings.broadcast_sender_access:
                access = sender_access
            else:
                access = resolve_access(snapshot, member.identity.id)
                if access is AccessLevel.NONE:
                    revoked.append(member)
                    return None
            return protocol.SERVER_NOTE_UPDATE, note_payload(snapshot, access)

        delivered = await self.registry.broadcast(key, build)

        for member in revoked:
            self.registry.remove(key, member)
            logger.info("Removed %s from note %s after access was revoked", member.id, key)
        return delivered


def _as_response(note: Any) -> NoteResponse:
    if type(note) is NoteResponse:
        return note
    if isinstance(note, NoteResponse):
        return NoteResponse.model_validate(note.model_dump(exclude={"access"}))
    return NoteResponse.model_validate(note)
