"""
Roster rules for a room's player list.

Joining is only allowed while the room is WAITING and below max_players.
Players are appended in join order; that order is what role cards are
zipped against. Removal is idempotent.
"""
import logging
from typing import Optional

from models.errors import GameAlreadyStarted, RoomFull
from models.game import Player, Role, Room, RoomStatus

logger = logging.getLogger(__name__)


class RosterManager:

    def add_player(self, room: Room, name: str) -> Player:
        if room.status != RoomStatus.WAITING:
            raise GameAlreadyStarted()
        if len(room.players) >= room.max_players:
            raise RoomFull(room.max_players)

        player = Player(name=name, role=Role.UNASSIGNED, is_alive=True)
        room.players.append(player)
        room.touch()
        logger.debug(f"[{room.code}] {player.id} ({name}) seated ({len(room.players)}/{room.max_players})")
        return player

    def find_player(self, room: Room, player_id: str) -> Optional[Player]:
        for p in room.players:
            if p.id == player_id:
                return p
        return None

    def remove_player(self, room: Room, player_id: str) -> Optional[Player]:
        """Remove a player by id. Returns the removed player, or None for a non-member."""
        player = self.find_player(room, player_id)
        if player is None:
            return None
        room.players = [p for p in room.players if p.id != player_id]
        room.touch()
        return player


# Module-level singleton
roster_manager = RosterManager()
