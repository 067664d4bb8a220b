"""
Client-side sync controller.

One state machine per open note with two ways of refreshing it: pushed
``server_note_*`` events while the live channel is up, and polling over REST
while it is down. Exactly one of them is active at a time.

Local edits are collected into a pending patch and flushed after a debounce
delay, over the live channel when connected and as a REST write otherwise.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from ..config import Settings, get_settings
from ..core.access import AccessLevel, can_edit
from ..core.repositories.note_repository import coerce_uuid
from ..core.schemas.notes import text_fields
from ..realtime import protocol
from .api import NotesApiClient
from .debounce import Debouncer
from .live import WebSocketChannel

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


class NoteSyncController:
    """Keeps a local copy of one note in sync with the server."""

    def __init__(
        self,
        note_id: str,
        api: NotesApiClient,
        channel=None,
        poll_interval: Optional[float] = None,
        debounce_delay: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.note_id = _note_key(note_id)
        self.api = api
        self.channel = channel
        self.poll_interval = (
            settings.poll_interval_seconds if poll_interval is None else poll_interval
        )
        self.state = SyncState.DISCONNECTED
        self.note: Optional[Dict[str, Any]] = None
        self.access = AccessLevel.NONE
        self.pending: Dict[str, str] = {}
        self.last_error: Optional[str] = None
        self.listeners: List[Callable[[Dict[str, Any]], None]] = []
        self._poll_task: Optional[asyncio.Task] = None
        self._debouncer = Debouncer(
            settings.debounce_seconds if debounce_delay is None else debounce_delay, self.flush
        )

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def read_only(self) -> bool:
        return not can_edit(self.access)

    async def start(self) -> None:
        """Initial load; polling runs until the live channel comes up."""
        await self.refresh()
        if self.state is SyncState.DISCONNECTED:
            self._start_polling()

    async def refresh(self) -> None:
        data = await self.api.get_note(self.note_id)
        self._replace(data)

    async def connection_established(self) -> None:
        if self.state is SyncState.CLOSED:
            return
        self.state = SyncState.CONNECTED
        self._stop_polling()
        await self.channel.send(protocol.JOIN_NOTE, {"noteId": self.note_id})

    def connection_lost(self) -> None:
        if self.state is SyncState.CLOSED:
            return
        self.state = SyncState.DISCONNECTED
        self._start_polling()

    def handle_event(self, event: str, data: Dict[str, Any]) -> None:
        if self.state is SyncState.CLOSED:
            return
        if event in (protocol.SERVER_NOTE_INIT, protocol.SERVER_NOTE_UPDATE):
            if _note_key(data.get("id")) == self.note_id:
                self._replace(data)
        elif event == protocol.ERROR_MESSAGE:
            self.last_error = data.get("message")
            logger.info("Server error for note %s: %s", self.note_id, self.last_error)
        else:
            logger.debug("Ignoring unknown event %r", event)

    def edit(self, title: Any = None, content: Any = None) -> bool:
        """Queue a local edit. Returns False when the edit was rejected."""
        if self.state is SyncState.CLOSED or self.read_only:
            return False
        fields = text_fields(title=title, content=content)
        if not fields:
            return False

        self.pending.update(fields)
        if self.note is not None:
            self.note.update(fields)
        self._debouncer.trigger()
        return True

    async def flush(self) -> None:
        """Send the pending patch now."""
        if not self.pending:
            return
        patch, self.pending = self.pending, {}

        if self.state is SyncState.CONNECTED and self.channel is not None:
            try:
                await self.channel.send(
                    protocol.CLIENT_NOTE_UPDATE, {"noteId": self.note_id, **patch}
                )
                return
            except (ConnectionError, OSError) as exc:
                logger.debug("Live send failed, writing through REST: %s", exc)

        await self._write_through(patch)

    async def close(self) -> None:
        """Tear down. Safe to call more than once."""
        if self.state is SyncState.CLOSED:
            return
        self._debouncer.cancel()
        try:
            await self._debouncer.drain()
            await self.flush()
            if self.state is SyncState.CONNECTED and self.channel is not None:
                try:
                    await self.channel.send(protocol.LEAVE_NOTE, {"noteId": self.note_id})
                except (ConnectionError, OSError) as exc:
                    logger.debug("Could not send leave for %s: %s", self.note_id, exc)
        finally:
            self.state = SyncState.CLOSED
            self._debouncer.cancel()
            self._stop_polling()
            if self.channel is not None:
                await self.channel.close()

    async def _write_through(self, patch: Dict[str, str]) -> None:
        try:
            await self.api.update_note(self.note_id, patch)
        except Exception as exc:
            # writes while offline are best effort
            logger.debug("Dropped offline write for %s: %s", self.note_id, exc)

    def _replace(self, data: Dict[str, Any]) -> None:
        self.note = dict(data)
        try:
            self.access = AccessLevel(data.get("access", AccessLevel.NONE.value))
        except ValueError:
            self.access = AccessLevel.NONE
        for listener in self.listeners:
            listener(self.note)

    def _start_polling(self) -> None:
        if self.polling:
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll())

    def _stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.refresh()
            except Exception as exc:
                logger.debug("Poll for %s failed: %s", self.note_id, exc)


def _note_key(note_id: Any) -> str:
    parsed = coerce_uuid(note_id)
    return str(parsed) if parsed is not None else str(note_id)


@asynccontextmanager
async def open_note(
    note_id: str,
    api: NotesApiClient,
    ws_url: Optional[str] = None,
    channel=None,
    settings: Optional[Settings] = None,
) -> AsyncIterator[NoteSyncController]:
    """Open a note for editing; the controller is always closed on exit."""
    if channel is None and ws_url:
        channel = WebSocketChannel(ws_url, api.token, settings=settings)

    controller = NoteSyncController(note_id, api, channel=channel, settings=settings)
    try:
        await controller.start()
        if channel is not None:
            channel.bind(controller)
            await channel.start()
        yield controller
    finally:
        await controller.close()
