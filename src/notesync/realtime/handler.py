"""
WebSocket endpoint for realtime note collaboration.

Connections authenticate once at connect time. Frames from one connection
are handled strictly in arrival order, each to completion.
"""

import logging

from fastapi import WebSocket, WebSocketDisconnect

from ..core.exceptions import UnauthorizedError
from . import protocol
from .connection import WebSocketConnection
from .gateway import authenticate
from .manager import CollaborationManager

logger = logging.getLogger(__name__)

UNAUTHORIZED_CLOSE_CODE = 4401


async def websocket_endpoint(websocket: WebSocket):
    """Realtime session: authenticate, then run the receive loop."""
    manager: CollaborationManager = websocket.app.state.collaboration
    await websocket.accept()

    try:
        identity = authenticate(websocket.query_params, websocket.headers)
    except UnauthorizedError:
        await websocket.send_text(
            protocol.encode(protocol.ERROR_MESSAGE, protocol.error_payload("Unauthorized"))
        )
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE)
        return

    connection = WebSocketConnection(websocket, identity)
    logger.info("Realtime session %s opened for user %s", connection.id, identity.id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info("Realtime session %s closed, code=%s", connection.id, message.get("code"))
                break

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            try:
                envelope = protocol.decode(raw)
            except protocol.ProtocolError as exc:
                logger.debug("Ignoring malformed frame from %s: %s", connection.id, exc)
                continue

            await manager.handle_event(connection, envelope)

    except WebSocketDisconnect as exc:
        logger.info("Realtime session %s disconnected, code=%s", connection.id, exc.code)
    except Exception:
        logger.exception("Realtime session %s failed", connection.id)
    finally:
        manager.disconnect(connection)
