"""
Room registry: which connections are subscribed to which note.

Membership is process-local state owned by one registry instance that is
injected wherever it is needed. Mutations take a ``threading.Lock`` and never
await, so removing a connection is complete before the caller continues.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """What the registry needs from a connection."""

    id: str
    identity: Any

    async def send_event(self, event: str, data: Optional[Dict[str, Any]] = None) -> bool:
        ...


# builds (event, data) for one member, or None to skip that member
PayloadBuilder = Callable[[Connection], Optional[Tuple[str, Dict[str, Any]]]]


class RoomRegistry:
    """Groups connections into broadcast rooms keyed by note id."""

    def __init__(self):
        # note_id -> connection id -> connection
        self._rooms: Dict[str, Dict[str, Connection]] = {}
        self._lock = threading.Lock()

    def add(self, note_id: str, connection: Connection) -> bool:
        """Subscribe a connection. Returns False when it was already a member."""
        with self._lock:
            room = self._rooms.setdefault(note_id, {})
            if connection.id in room:
                return False
            room[connection.id] = connection
            return True

    def remove(self, note_id: str, connection: Connection) -> bool:
        with self._lock:
            return self._discard(note_id, connection)

    def remove_everywhere(self, connection: Connection) -> List[str]:
        """Drop a connection from every room; returns the rooms it left."""
        with self._lock:
            left = [note_id for note_id, room in self._rooms.items() if connection.id in room]
            for note_id in left:
                self._discard(note_id, connection)
            return left

    def members(self, note_id: str) -> List[Connection]:
        """Snapshot of a room's members."""
        with self._lock:
            return list(self._rooms.get(note_id, {}).values())

    def is_member(self, note_id: str, connection: Connection) -> bool:
        with self._lock:
            return connection.id in self._rooms.get(note_id, {})

    def rooms_of(self, connection: Connection) -> List[str]:
        with self._lock:
            return [note_id for note_id, room in self._rooms.items() if connection.id in room]

    def room_count(self) -> int:
        with self._lock:
            return len(self._rooms)

    def connection_count(self) -> int:
        with self._lock:
            return len({cid for room in self._rooms.values() for cid in room})

    async def broadcast(self, note_id: str, build: PayloadBuilder) -> int:
        """Send a per-member payload to everyone in the room.

        Members removed while the broadcast is in flight are skipped. A failed
        send is logged and does not stop delivery to the others. Returns the
        number of members the event was sent to.
        """
        delivered = 0
        for member in self.members(note_id):
            if not self.is_member(note_id, member):
                continue
            message = build(member)
            if message is None:
                continue
            event, data = message
            try:
                if await member.send_event(event, data):
                    delivered += 1
            except Exception as exc:
                logger.warning(
                    "Failed to deliver %s to connection %s: %s", event, member.id, exc
                )
        return delivered

    def _discard(self, note_id: str, connection: Connection) -> bool:
        room = self._rooms.get(note_id)
        if not room or connection.id not in room:
            return False
        del room[connection.id]
        if not room:
            del self._rooms[note_id]
        return True
