"""
Broadcaster — fans room events out to every client subscribed to a channel.

Each room has one channel, `game-<code>`. Every subscriber on the channel
receives every event, roles included; clients only display their own role.

ConnectionManager is the WebSocket implementation used in production.
Anything with an async `trigger(channel, event, data)` can stand in for it.
"""
import logging
import uuid
from typing import Any, Dict, Optional, Protocol

from fastapi import WebSocket

from models.game import RoomEvent

logger = logging.getLogger(__name__)


def connection_id(kind: str) -> str:
    """Per-socket id, so a second tab or an early reconnect never replaces a live entry."""
    return f"{kind}:{uuid.uuid4().hex}"


class Broadcaster(Protocol):
    async def trigger(self, channel: str, event: str, data: Any) -> None: ...


class ConnectionManager:
    """
    Tracks active WebSocket connections per channel.
    Safe for asyncio single-threaded event loop (no extra locking needed).
    """

    def __init__(self):
        # {channel: {client_id: WebSocket}}
        self._channels: Dict[str, Dict[str, WebSocket]] = {}

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    async def connect(self, channel: str, client_id: str, ws: WebSocket) -> None:
        await ws.accept()
        self._channels.setdefault(channel, {})[client_id] = ws
        logger.debug(
            f"[{channel}] {client_id} subscribed ({self.count(channel)} total)"
        )

    def disconnect(self, channel: str, client_id: str) -> None:
        conns = self._channels.get(channel, {})
        conns.pop(client_id, None)
        if not conns:
            self._channels.pop(channel, None)

    def count(self, channel: str, kind: Optional[str] = None) -> int:
        """Subscribers on a channel, optionally only those whose id was made with `kind`."""
        conns = self._channels.get(channel, {})
        if kind is None:
            return len(conns)
        return sum(1 for cid in conns if cid.startswith(f"{kind}:"))

    def is_connected(self, channel: str, client_id: str) -> bool:
        return client_id in self._channels.get(channel, {})

    # ── Sending ────────────────────────────────────────────────────────────────

    async def send_to(self, channel: str, client_id: str, message: Dict) -> None:
        """Send a private message to a single subscriber."""
        ws = self._channels.get(channel, {}).get(client_id)
        if ws:
            try:
                await ws.send_json(message)
            except Exception as exc:
                logger.warning(f"[{channel}] send_to {client_id} failed: {exc}")
                self.disconnect(channel, client_id)

    async def broadcast(
        self,
        channel: str,
        message: Dict,
        exclude: Optional[str] = None,
    ) -> None:
        """Send a message to every subscriber of a channel."""
        for cid, ws in list(self._channels.get(channel, {}).items()):
            if cid == exclude:
                continue
            try:
                await ws.send_json(message)
            except Exception as exc:
                logger.warning(f"[{channel}] broadcast to {cid} failed: {exc}")
                self.disconnect(channel, cid)

    async def trigger(self, channel: str, event: str, data: Any) -> None:
        """Publish a room event to the channel."""
        message = RoomEvent(channel=channel, event=event, data=data).model_dump(mode="json")
        await self.broadcast(channel, message)
