"""
RoomRegistry — the authoritative table of live rooms, keyed by room code.

Owns room lifetime (creation, replacement, deletion) and the per-code
asyncio.Lock that every read-modify-write section must hold:

    async with registry.lock(code):
        room = await registry.require(code)
        ...mutate...
        await registry.replace(code, room)

The registry is an explicit instance handed to the game master and the
routers; there is no module-level room table.
"""
import asyncio
import logging
import random
import string
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from models.errors import RoomCodeExhausted, RoomNotFound
from models.game import Room
from services.room_store import RoomStore

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def normalize_code(code: str) -> str:
    return code.strip().upper()


class RoomRegistry:

    MAX_CODE_ATTEMPTS = 50

    def __init__(
        self,
        store: RoomStore,
        min_players: int = 6,
        max_players: int = 15,
        code_length: int = 6,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.min_players = min_players
        self.max_players = max_players
        self.code_length = code_length
        self.rng = rng or random.SystemRandom()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}  # holders + waiters per code
        self._create_lock = asyncio.Lock()

    @asynccontextmanager
    async def lock(self, code: str) -> AsyncIterator[None]:
        """
        Hold the per-room lock for the duration of the block.

        Locks are created on first use and dropped once nobody holds or waits
        on them, so commands against unknown codes leave nothing behind.
        """
        lock = self._locks.get(code)
        if lock is None:
            lock = self._locks[code] = asyncio.Lock()
        self._lock_users[code] = self._lock_users.get(code, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[code] -= 1
            if self._lock_users[code] == 0:
                del self._lock_users[code]
                del self._locks[code]

    def _draw_code(self) -> str:
        return "".join(self.rng.choice(CODE_ALPHABET) for _ in range(self.code_length))

    async def create(self, host_name: str) -> Room:
        """Create a WAITING room under a fresh code, re-drawing on collision with a live room."""
        async with self._create_lock:
            for attempt in range(1, self.MAX_CODE_ATTEMPTS + 1):
                code = self._draw_code()
                if await self.store.exists(code):
                    logger.warning(f"Room code collision on {code} (attempt {attempt}) — re-drawing")
                    continue
                room = Room(
                    code=code,
                    host_name=host_name,
                    min_players=self.min_players,
                    max_players=self.max_players,
                )
                await self._persist(room)
                return room
        raise RoomCodeExhausted(self.MAX_CODE_ATTEMPTS)

    async def get(self, code: str) -> Optional[Room]:
        return await self.store.get(code)

    async def require(self, code: str) -> Room:
        room = await self.store.get(code)
        if room is None:
            raise RoomNotFound(code)
        return room

    async def replace(self, code: str, room: Room) -> None:
        if room.code != code:
            raise ValueError(f"Room code mismatch: writing {room.code} under {code}")
        await self._persist(room)

    async def delete(self, code: str) -> None:
        try:
            await self.store.delete(code)
        except Exception:
            logger.exception(f"[{code}] Failed to delete room from store")
            raise

    async def _persist(self, room: Room) -> None:
        try:
            await self.store.put(room)
        except Exception:
            logger.exception(f"[{room.code}] Failed to persist room")
            raise
