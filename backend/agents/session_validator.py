"""
Session validation and reconnect.

There is no server-issued credential. A client is "the host" if it can show
the room code it remembers creating; it is "a player" if it can show a
(room code, player id) pair that matches a roster entry. These checks are
advisory, not cryptographic: anyone who learns a room code and a player id
can claim that seat.
"""
import logging
from typing import Optional

from models.errors import InvalidSession
from models.game import Player, PlayerSession
from services.room_registry import RoomRegistry, normalize_code

logger = logging.getLogger(__name__)


class SessionValidator:

    def __init__(self, registry: RoomRegistry):
        self.registry = registry

    async def validate_host(self, code: str, remembered_host_code: Optional[str]) -> bool:
        """True iff the room exists and the client's remembered host code is this room's code."""
        code = normalize_code(code)
        if not remembered_host_code or normalize_code(remembered_host_code) != code:
            return False
        return await self.registry.get(code) is not None

    async def validate_player(self, code: str, player_id: str) -> bool:
        room = await self.registry.get(normalize_code(code))
        if room is None:
            return False
        return any(p.id == player_id for p in room.players)

    async def validate_session(self, code: str, player_id: Optional[str] = None) -> bool:
        """
        Command-surface check. Without a player id this is the host form and
        only confirms the room is live (the host's remembered code is the claim).
        """
        if player_id is None:
            return await self.registry.get(normalize_code(code)) is not None
        return await self.validate_player(code, player_id)

    async def reconnect(self, code: str, player_id: str) -> Player:
        """Return the player's current record, including a role assigned since the client last looked."""
        code = normalize_code(code)
        room = await self.registry.get(code)
        if room is None:
            logger.info(f"[{code}] Reconnect for {player_id} rejected: room gone")
            raise InvalidSession("Room no longer exists")
        for p in room.players:
            if p.id == player_id:
                return p
        logger.info(f"[{code}] Reconnect for {player_id} rejected: not in roster")
        raise InvalidSession("Player is not in this room")

    async def session_for(self, code: str, player_id: str) -> PlayerSession:
        player = await self.reconnect(code, player_id)
        return PlayerSession(id=player.id, room_code=normalize_code(code), role=player.role)
