"""One live WebSocket session bound to a verified identity."""

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from ..security import Identity
from . import protocol

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """Sends protocol events over a FastAPI WebSocket.

    The identity is fixed at construction and handed to every handler from
    here; it is never re-read from the socket.
    """

    def __init__(self, websocket: WebSocket, identity: Identity):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.identity = identity

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_event(self, event: str, data: Optional[Dict[str, Any]] = None) -> bool:
        if not self.is_open:
            logger.debug("Skipping %s for closed connection %s", event, self.id)
            return False
        await self.websocket.send_text(protocol.encode(event, data))
        return True

    def __repr__(self) -> str:
        return f"<WebSocketConnection {self.id} user={self.identity.id}>"
