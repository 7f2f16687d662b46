from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime, timezone
import uuid


def _utcnow() -> datetime:
    """Timezone-aware UTC datetime (replaces deprecated datetime.utcnow)."""
    return datetime.now(timezone.utc)


class Role(str, Enum):
    MAFIA = "mafia"
    DETECTIVE = "detective"
    DOCTOR = "doctor"
    VILLAGER = "villager"
    UNASSIGNED = "unassigned"


class RoomStatus(str, Enum):
    WAITING = "waiting"   # lobby: players may join
    STARTED = "started"
    ENDED = "ended"       # terminal


class Winner(str, Enum):
    MAFIA = "mafia"
    VILLAGERS = "villagers"


class EndReason(str, Enum):
    HOST_ENDED = "host-ended"
    HOST_LEFT = "host-left"
    GAME_OVER = "game-over"


class RoomEventName(str, Enum):
    PLAYER_JOINED = "player-joined"
    GAME_STARTED = "game-started"
    PLAYER_ELIMINATED = "player-eliminated"
    PLAYER_LEFT = "player-left"
    GAME_ENDED = "game-ended"
    GAME_RESET = "game-reset"


# Day/night vocabulary reserved for a future phase engine. Nothing resolves these yet.
class GamePhase(str, Enum):
    DAY = "day"
    NIGHT = "night"
    VOTING = "voting"


class GameAction(str, Enum):
    VOTE = "vote"
    INVESTIGATE = "investigate"
    PROTECT = "protect"
    KILL = "kill"


class RoleQuota(BaseModel):
    """One inclusive player-count band of the role table. Villagers fill the rest."""
    min_players: int
    max_players: int
    mafia: int
    detective: int
    doctor: int

    def covers(self, count: int) -> bool:
        return self.min_players <= count <= self.max_players

    def villagers_for(self, count: int) -> int:
        return count - self.mafia - self.detective - self.doctor


# Canonical role table keyed by inclusive player-count bands.
ROLE_SETUPS: List[RoleQuota] = [
    RoleQuota(min_players=6, max_players=8, mafia=2, detective=1, doctor=1),
    RoleQuota(min_players=9, max_players=11, mafia=3, detective=1, doctor=1),
    RoleQuota(min_players=12, max_players=15, mafia=4, detective=2, doctor=2),
]


class RoleCounts(BaseModel):
    """Concrete role breakdown for a specific player count."""
    mafia: int
    detective: int
    doctor: int
    villager: int


def new_player_id() -> str:
    return str(uuid.uuid4())


class Player(BaseModel):
    id: str = Field(default_factory=new_player_id)
    name: str
    role: Role = Role.UNASSIGNED
    is_alive: bool = True
    joined_at: datetime = Field(default_factory=_utcnow)


class Room(BaseModel):
    code: str
    host_name: str
    players: List[Player] = []
    status: RoomStatus = RoomStatus.WAITING
    min_players: int = 6
    max_players: int = 15
    roles: Optional[RoleCounts] = None   # set while roles are assigned
    winner: Optional[Winner] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def touch(self) -> None:
        self.updated_at = _utcnow()


class PlayerSession(BaseModel):
    """Client-held identity claim. Validated against the room, never trusted."""
    id: str
    room_code: str
    role: Optional[Role] = None


class WinCheck(BaseModel):
    over: bool
    winner: Optional[Winner] = None


# ── Broadcast message shape ───────────────────────────────────────────────────

class RoomEvent(BaseModel):
    channel: str
    event: str
    data: Any = None


def room_channel(code: str) -> str:
    """Per-room broadcast channel name."""
    return f"game-{code}"


# ── HTTP request/response models ──────────────────────────────────────────────

def _clean_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("name must not be empty")
    if len(value) > 20:
        raise ValueError("name must be at most 20 characters")
    return value


class CreateRoomRequest(BaseModel):
    host_name: str

    @field_validator("host_name")
    @classmethod
    def check_host_name(cls, value: str) -> str:
        return _clean_name(value)


class JoinRoomRequest(BaseModel):
    player_name: str

    @field_validator("player_name")
    @classmethod
    def check_player_name(cls, value: str) -> str:
        return _clean_name(value)


class EliminateRequest(BaseModel):
    player_id: str


class EndGameRequest(BaseModel):
    reason: EndReason = EndReason.HOST_ENDED


class LeaveRoomRequest(BaseModel):
    player_id: str


class RosterResponse(BaseModel):
    code: str
    status: RoomStatus
    players: List[Player]
    roles: Optional[RoleCounts] = None


class SessionResponse(BaseModel):
    valid: bool


class RoomResponse(Room):
    # Lobby-only role breakdown for the current head count
    lobby_summary: Optional[Dict[str, Any]] = None
