"""
Live channel to the realtime endpoint over ``websockets``.

The channel owns the reconnect loop and reports every transition to the
controller it is bound to. It never retries a failed send.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..config import Settings, get_settings
from ..realtime import protocol

logger = logging.getLogger(__name__)

UNAUTHORIZED_CLOSE_CODE = 4401


def with_token(url: str, token: str) -> str:
    """Append the token as a query parameter."""
    parts = urlsplit(url)
    query = "&".join(filter(None, [parts.query, urlencode({"token": token})]))
    return urlunsplit(parts._replace(query=query))


class WebSocketChannel:
    """Reconnecting WebSocket transport for one NoteSyncController."""

    def __init__(
        self,
        url: str,
        token: str,
        reconnect_delay: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.url = url
        self.token = token
        self.reconnect_delay = (
            settings.reconnect_delay_seconds if reconnect_delay is None else reconnect_delay
        )
        self.controller = None
        self._ws: Optional[ClientConnection] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def bind(self, controller) -> None:
        self.controller = controller

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def send(self, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        if self._ws is None:
            raise ConnectionError("Live channel is not connected")
        try:
            await self._ws.send(protocol.encode(event, data))
        except ConnectionClosed as exc:
            raise ConnectionError(f"Live channel closed: {exc}") from exc

    async def close(self) -> None:
        self._closed = True
        if self._ws is not None:
            await self._ws.close()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self) -> None:
        while not self._closed:
            await self._session()
            if self._closed:
                break
            await asyncio.sleep(self.reconnect_delay)

    async def _session(self) -> None:
        established = False
        try:
            async with connect(
                with_token(self.url, self.token),
                additional_headers={"Authorization": f"Bearer {self.token}"},
            ) as ws:
                self._ws = ws
                established = True
                await self.controller.connection_established()

                async for raw in ws:
                    try:
                        envelope = protocol.decode(raw)
                    except protocol.ProtocolError as exc:
                        logger.debug("Ignoring malformed frame: %s", exc)
                        continue
                    self.controller.handle_event(envelope.event, envelope.data)
        except ConnectionClosed as exc:
            if exc.rcvd is not None and exc.rcvd.code == UNAUTHORIZED_CLOSE_CODE:
                logger.warning("Live channel rejected the credential, not reconnecting")
                self._closed = True
            else:
                logger.debug("Live channel closed: %s", exc)
        except (OSError, WebSocketException) as exc:
            logger.debug("Live channel error: %s", exc)
        finally:
            self._ws = None
            if established and self.controller is not None:
                self.controller.connection_lost()
