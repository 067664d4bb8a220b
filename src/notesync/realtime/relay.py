"""
Optional Redis pub/sub relay for room broadcasts.

Each process publishes the notes it broadcasts on ``<prefix>:<note_id>`` and
listens on ``<prefix>:*``. Messages carry the publishing process's origin id
so a process never re-delivers its own broadcasts.
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as redis

from ..config import Settings, get_settings
from ..core.access import AccessLevel
from ..core.schemas.notes import NoteResponse

logger = logging.getLogger(__name__)

DeliverCallback = Callable[[NoteResponse, AccessLevel], Awaitable[Any]]


class RedisRelay:
    """Fan room broadcasts out to the other processes."""

    # seconds before listening again after a Redis error
    retry_delay = 1.0

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.origin = uuid.uuid4().hex
        self.redis: Optional[redis.Redis] = None
        self._pubsub = None
        self._listener: Optional[asyncio.Task] = None
        self._deliver: Optional[DeliverCallback] = None

    def channel_for(self, note_id: Any) -> str:
        return f"{self.settings.realtime_channel_prefix}:{note_id}"

    async def start(self, deliver: DeliverCallback) -> None:
        """Connect and start listening for foreign broadcasts."""
        self._deliver = deliver
        try:
            self.redis = redis.from_url(
                self.settings.redis_url,
                max_connections=self.settings.redis_max_connections,
                decode_responses=True,
            )
            await self.redis.ping()
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

        self._pubsub = self.redis.pubsub()
        await self._pubsub.psubscribe(self.channel_for("*"))
        self._listener = asyncio.create_task(self._listen())
        logger.info("Realtime relay started", extra={"origin": self.origin})

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            except Exception as exc:
                logger.warning("Relay listener had already failed: %s", exc)
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            logger.info("Realtime relay stopped")

    async def ping(self) -> bool:
        if self.redis is None:
            raise ConnectionError("Relay is not connected")
        return await self.redis.ping()

    async def publish(self, note: NoteResponse, sender_access: AccessLevel) -> None:
        if self.redis is None:
            return
        message = json.dumps(
            {
                "origin": self.origin,
                "sender_access": AccessLevel(sender_access).value,
                "note": note.model_dump(mode="json", exclude={"access"}),
            }
        )
        await self.redis.publish(self.channel_for(note.id), message)

    async def _listen(self) -> None:
        """Deliver foreign broadcasts until cancelled; Redis drops are retried."""
        while True:
            try:
                async for message in self._pubsub.listen():
                    if message.get("type") != "pmessage":
                        continue
                    await self._handle_message(message.get("data"))
                return
            except Exception as exc:
                logger.error(f"Relay listener lost Redis: {exc}")
                await asyncio.sleep(self.retry_delay)

    async def _handle_message(self, data: Any) -> None:
        try:
            body = json.loads(data)
            if body.get("origin") == self.origin:
                return
            note = NoteResponse.model_validate(body["note"])
            access = AccessLevel(body["sender_access"])
        except (TypeError, ValueError, KeyError) as exc:
            logger.warning("Ignoring malformed relay message: %s", exc)
            return

        try:
            await self._deliver(note, access)
        except Exception:
            logger.exception("Relay delivery failed for note %s", note.id)
