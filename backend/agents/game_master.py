"""
Game Master — the room lifecycle state machine. Pure deterministic Python.

States:
  WAITING → STARTED → ENDED (terminal)
  STARTED → WAITING only through an explicit reset ("new game")

Responsibilities:
- Guard every transition and raise a distinguishable GameError when refused
- Run roster rules, role assignment and win checks on the room
- Persist the result through the RoomRegistry
- Emit exactly one room event per visible change on `game-<code>`
- Close the room when its host goes away

Every command holds the room's lock from read to broadcast, so commands on
the same room never interleave and their events go out in apply order.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from agents import win_condition
from agents.role_assigner import RoleAssigner, role_assigner, validate_distribution
from agents.roster import RosterManager, roster_manager
from models.errors import (
    GameAlreadyEnded,
    GameAlreadyStarted,
    GameNotStarted,
    InsufficientPlayers,
    PlayerAlreadyEliminated,
    PlayerNotFound,
)
from models.game import (
    EndReason,
    Player,
    Role,
    Room,
    RoomEventName,
    RoomStatus,
    WinCheck,
    room_channel,
)
from services.broadcaster import Broadcaster
from services.room_registry import RoomRegistry, normalize_code

logger = logging.getLogger(__name__)


def _roster_payload(players: List[Player]) -> List[Dict[str, Any]]:
    return [p.model_dump(mode="json") for p in players]


class GameMaster:
    """
    Room lifecycle engine.
    All room reads/writes go through the injected RoomRegistry.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        broadcaster: Broadcaster,
        assigner: Optional[RoleAssigner] = None,
        roster: Optional[RosterManager] = None,
        host_disconnect_grace_seconds: float = 30.0,
    ):
        self.registry = registry
        self.broadcaster = broadcaster
        self.assigner = assigner or role_assigner
        self.roster = roster or roster_manager
        self.host_disconnect_grace_seconds = host_disconnect_grace_seconds
        # Pending host-left cleanups — one per room whose host socket dropped
        self._host_cleanup_tasks: Dict[str, asyncio.Task] = {}

    # ── Notifications ──────────────────────────────────────────────────────────

    async def _notify(self, code: str, event: RoomEventName, data: Any) -> None:
        """Best-effort: the mutation has already landed, so a failed send is logged, not rolled back."""
        try:
            await self.broadcaster.trigger(room_channel(code), event.value, data)
        except Exception:
            logger.exception(
                f"[{code}] Broadcast of '{event.value}' failed — room updated but subscribers were not notified"
            )

    # ── Queries ────────────────────────────────────────────────────────────────

    async def get_room(self, code: str) -> Room:
        return await self.registry.require(normalize_code(code))

    # ── Commands ───────────────────────────────────────────────────────────────

    async def create_room(self, host_name: str) -> Room:
        room = await self.registry.create(host_name)
        logger.info(f"[{room.code}] Room created by host {host_name}")
        return room

    async def join_room(self, code: str, player_name: str) -> Player:
        code = normalize_code(code)
        async with self.registry.lock(code):
            room = await self.registry.require(code)
            player = self.roster.add_player(room, player_name)
            await self.registry.replace(code, room)
            await self._notify(code, RoomEventName.PLAYER_JOINED, player.model_dump(mode="json"))
        logger.info(f"[{code}] Player {player.id} ({player_name}) joined ({len(room.players)}/{room.max_players})")
        return player

    async def start_game(self, code: str) -> Room:
        code = normalize_code(code)
        async with self.registry.lock(code):
            room = await self.registry.require(code)
            if room.status != RoomStatus.WAITING:
                raise GameAlreadyStarted("Game is not in lobby state")
            if len(room.players) < room.min_players:
                raise InsufficientPlayers(room.min_players, len(room.players))

            self._deal(room)
            room.status = RoomStatus.STARTED
            room.winner = None
            room.touch()
            await self.registry.replace(code, room)
            await self._notify(code, RoomEventName.GAME_STARTED, _roster_payload(room.players))

        roles = room.roles.model_dump() if room.roles else None
        logger.info(f"[{code}] Game started with {len(room.players)} players. Roles: {roles}")
        return room

    async def shuffle_roles(self, code: str) -> Room:
        """Deal a fresh set of role cards. A reshuffle is a fresh round: everyone is revived."""
        code = normalize_code(code)
        async with self.registry.lock(code):
            room = await self.registry.require(code)
            if room.status != RoomStatus.STARTED:
                raise GameNotStarted("Roles can only be shuffled while the game is in progress")

            self._deal(room)
            room.touch()
            await self.registry.replace(code, room)
            await self._notify(code, RoomEventName.GAME_STARTED, _roster_payload(room.players))

        logger.info(f"[{code}] Roles reshuffled for {len(room.players)} players")
        return room

    async def reset_game(self, code: str) -> Room:
        """New game: clear every role back to unassigned and return to the lobby, keeping the roster."""
        code = normalize_code(code)
        async with self.registry.lock(code):
            room = await self.registry.require(code)
            if room.status != RoomStatus.STARTED:
                raise GameNotStarted("Only a game in progress can be reset")

            room.players = [
                p.model_copy(update={"role": Role.UNASSIGNED, "is_alive": True})
                for p in room.players
            ]
            room.roles = None
            room.winner = None
            room.status = RoomStatus.WAITING
            room.touch()
            await self.registry.replace(code, room)
            await self._notify(code, RoomEventName.GAME_RESET, _roster_payload(room.players))

        logger.info(f"[{code}] Game reset to lobby")
        return room

    async def eliminate_player(self, code: str, player_id: str) -> WinCheck:
        """
        Mark a player dead and check the win condition.

        The player stays on the roster. A winning elimination moves the room
        to ENDED with `winner` set; the room is kept so clients can show the
        reveal until the host ends it.
        """
        code = normalize_code(code)
        async with self.registry.lock(code):
            room = await self.registry.require(code)
            if room.status != RoomStatus.STARTED:
                raise GameNotStarted("Players can only be eliminated while the game is in progress")
            player = self.roster.find_player(room, player_id)
            if player is None:
                raise PlayerNotFound(player_id, code)
            if not player.is_alive:
                raise PlayerAlreadyEliminated(player_id)

            player.is_alive = False
            verdict = win_condition.evaluate(room.players)
            if verdict.over:
                room.status = RoomStatus.ENDED
                room.winner = verdict.winner
            room.touch()
            await self.registry.replace(code, room)
            await self._notify(code, RoomEventName.PLAYER_ELIMINATED, {
                "player_id": player_id,
                "game_over": verdict.over,
                "winner": verdict.winner.value if verdict.winner else None,
            })

        logger.info(f"[{code}] Player {player_id} eliminated")
        if verdict.over:
            logger.info(f"[{code}] Game over — {verdict.winner.value} win")
        return verdict

    async def end_game(self, code: str, reason: EndReason = EndReason.HOST_ENDED) -> None:
        """Close the room from any state. Idempotent: ending a room that is already gone is a no-op."""
        code = normalize_code(code)
        self._cancel_host_cleanup(code)
        async with self.registry.lock(code):
            room = await self.registry.get(code)
            if room is None:
                logger.info(f"[{code}] end_game ({reason.value}) — room already gone")
                return
            await self.registry.delete(code)
            await self._notify(code, RoomEventName.GAME_ENDED, {
                "reason": reason.value,
                "winner": room.winner.value if room.winner else None,
            })
        logger.info(f"[{code}] Room closed ({reason.value})")

    async def leave_room(self, code: str, player_id: str) -> None:
        """Remove a player. Never changes status, even if the roster drops below min_players."""
        code = normalize_code(code)
        async with self.registry.lock(code):
            room = await self.registry.require(code)
            if room.status == RoomStatus.ENDED:
                raise GameAlreadyEnded()
            removed = self.roster.remove_player(room, player_id)
            if removed is None:
                return
            await self.registry.replace(code, room)
            await self._notify(code, RoomEventName.PLAYER_LEFT, {"player_id": player_id})
        logger.info(f"[{code}] Player {player_id} left ({len(room.players)} remaining)")

    # ── Host presence ──────────────────────────────────────────────────────────

    def host_connected(self, code: str) -> None:
        """Host (re)connected — cancel any pending host-left cleanup."""
        if self._cancel_host_cleanup(normalize_code(code)):
            logger.info(f"[{code}] Host reconnected — room kept open")

    def host_disconnected(self, code: str) -> None:
        """Schedule the room to close unless the host comes back within the grace period."""
        code = normalize_code(code)
        self._cancel_host_cleanup(code)
        self._host_cleanup_tasks[code] = asyncio.create_task(
            self._close_after_host_left(code, self.host_disconnect_grace_seconds)
        )

    async def _close_after_host_left(self, code: str, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        # Drop our own entry first so end_game doesn't cancel the running task
        self._host_cleanup_tasks.pop(code, None)
        logger.info(f"[{code}] Host did not return within {delay:g}s — closing room")
        await self.end_game(code, EndReason.HOST_LEFT)

    def _cancel_host_cleanup(self, code: str) -> bool:
        task = self._host_cleanup_tasks.pop(code, None)
        if task and not task.done():
            task.cancel()
            return True
        return False

    async def shutdown(self) -> None:
        """Cancel pending host-left cleanups (app shutdown)."""
        tasks = list(self._host_cleanup_tasks.values())
        self._host_cleanup_tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ── Internals ──────────────────────────────────────────────────────────────

    def _deal(self, room: Room) -> None:
        room.players = self.assigner.assign(room.players)
        validate_distribution(room.players)
        room.roles = self.assigner.role_counts(len(room.players))
