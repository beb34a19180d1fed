"""
Realtime relay: per-user WebSocket channels ("user-{id}") inside this process.

Purely additive to the database write. A user with no open socket simply misses the
live event and sees the notification on the next fetch; there is no backfill.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Any

from fastapi import WebSocket

from kreels.core.constants import USER_CHANNEL_PREFIX

logger = logging.getLogger(__name__)


def user_channel(user_id: str) -> str:
    return f"{USER_CHANNEL_PREFIX}{user_id}"


class ConnectionManager:
    """Tracks open sockets per channel and broadcasts JSON events to them."""

    def __init__(self):
        self._channels: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._channels[user_channel(user_id)].add(websocket)
        logger.debug("Socket joined %s", user_channel(user_id))

    async def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        channel = user_channel(user_id)
        async with self._lock:
            sockets = self._channels.get(channel)
            if sockets is None:
                return
            sockets.discard(websocket)
            if not sockets:
                del self._channels[channel]

    def connection_count(self, user_id: str) -> int:
        return len(self._channels.get(user_channel(user_id), ()))

    async def emit(self, user_id: str, event: str, data: Any) -> int:
        """Send {"event", "data"} to every socket of the user. Returns how many sockets got it."""
        async with self._lock:
            sockets = list(self._channels.get(user_channel(user_id), ()))
        delivered = 0
        for ws in sockets:
            try:
                await ws.send_json({"event": event, "data": data})
                delivered += 1
            except Exception as e:
                logger.info("Dropping dead socket on %s: %s", user_channel(user_id), e)
                await self.disconnect(user_id, ws)
        return delivered
