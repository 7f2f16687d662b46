"""Test doubles shared across the suite."""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional

from models.game import Player, Role, Room, RoomEvent
from services.room_store import MemoryRoomStore


class RecordingBroadcaster:
    """Broadcaster double that keeps every event it was asked to publish."""

    def __init__(self, fail: bool = False) -> None:
        self.events: List[RoomEvent] = []
        self.fail = fail

    async def trigger(self, channel: str, event: str, data: Any) -> None:
        await asyncio.sleep(0)
        if self.fail:
            raise ConnectionError("broadcaster unavailable")
        self.events.append(RoomEvent(channel=channel, event=event, data=data))

    def names(self) -> List[str]:
        return [e.event for e in self.events]


class YieldingRoomStore(MemoryRoomStore):
    """Memory store that suspends on every call, like a network-backed store would."""

    async def get(self, code: str) -> Optional[Room]:
        await asyncio.sleep(0)
        return await super().get(code)

    async def put(self, room: Room) -> None:
        await asyncio.sleep(0)
        await super().put(room)


def make_players(count: int, role: Role = Role.UNASSIGNED) -> List[Player]:
    return [Player(id=f"player-{i}", name=f"Player {i}", role=role) for i in range(count)]
