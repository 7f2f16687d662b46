"""
Room persistence backends.

A store holds one record per room code with the roster nested inside it.
It knows nothing about game rules or locking — RoomRegistry serializes
access per code and is the only caller.
"""
import logging
from typing import Dict, Optional, Protocol

from models.game import Room
from config import Settings, settings

logger = logging.getLogger(__name__)


class RoomStore(Protocol):
    async def get(self, code: str) -> Optional[Room]: ...

    async def put(self, room: Room) -> None: ...

    async def delete(self, code: str) -> None: ...

    async def exists(self, code: str) -> bool: ...


class MemoryRoomStore:
    """
    In-process room table. Rooms vanish on restart.

    Stores deep copies so callers can't mutate persisted state without
    going through put().
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}

    async def get(self, code: str) -> Optional[Room]:
        room = self._rooms.get(code)
        return room.model_copy(deep=True) if room else None

    async def put(self, room: Room) -> None:
        self._rooms[room.code] = room.model_copy(deep=True)

    async def delete(self, code: str) -> None:
        self._rooms.pop(code, None)

    async def exists(self, code: str) -> bool:
        return code in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)


def build_room_store(cfg: Settings = settings) -> RoomStore:
    """Construct the backend chosen by cfg.room_store ("memory" | "firestore")."""
    if cfg.room_store == "firestore":
        from services.firestore_service import FirestoreRoomStore
        store: RoomStore = FirestoreRoomStore(cfg=cfg)
    elif cfg.room_store == "memory":
        store = MemoryRoomStore()
    else:
        raise ValueError(
            f"Unknown ROOM_STORE '{cfg.room_store}' (expected 'memory' or 'firestore')"
        )
    logger.info("Room store: %s", type(store).__name__)
    return store
