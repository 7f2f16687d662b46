"""
Role Assignment — quota lookup and unbiased role shuffling.

Responsibilities:
- Look up the role quota for a player count from ROLE_SETUPS
- Build the flat role-token list and Fisher–Yates shuffle it
- Zip shuffled roles onto the roster (player order never changes)
- Sanity-check the role table and assigned rosters

Pure and synchronous: never touches the store or the broadcaster.
Called by the game master on start and on every reshuffle.
"""
import logging
import math
import random
from typing import Any, Dict, List, MutableSequence, Optional, Sequence, TypeVar

from models.errors import InvalidPlayerCount, InvalidRoleDistribution
from models.game import Player, Role, RoleCounts, RoleQuota, ROLE_SETUPS

logger = logging.getLogger(__name__)

T = TypeVar("T")


def validate_table(table: Sequence[RoleQuota]) -> None:
    """
    Check a role table against its own constraints.

    Every band needs at least one mafia and enough seats for all special
    roles at its smallest count. Bands must be ordered, non-overlapping and
    contiguous so every supported count maps to exactly one band.
    """
    if not table:
        raise InvalidRoleDistribution("Role table is empty")

    previous: Optional[RoleQuota] = None
    for band in table:
        if band.min_players > band.max_players:
            raise InvalidRoleDistribution(
                f"Band {band.min_players}-{band.max_players} has min > max"
            )
        if band.mafia < 1:
            raise InvalidRoleDistribution(
                f"Band {band.min_players}-{band.max_players} has no mafia"
            )
        if min(band.detective, band.doctor) < 0:
            raise InvalidRoleDistribution(
                f"Band {band.min_players}-{band.max_players} has a negative role count"
            )
        if band.mafia + band.detective + band.doctor > band.min_players:
            raise InvalidRoleDistribution(
                f"Band {band.min_players}-{band.max_players} needs "
                f"{band.mafia + band.detective + band.doctor} special roles "
                f"but may have only {band.min_players} players"
            )
        if previous is not None and band.min_players != previous.max_players + 1:
            raise InvalidRoleDistribution(
                f"Band {band.min_players}-{band.max_players} does not follow "
                f"{previous.min_players}-{previous.max_players}"
            )
        previous = band


def fisher_yates_shuffle(items: MutableSequence[T], rng: random.Random) -> None:
    """In-place unbiased shuffle: for i from the last index down to 1, swap i with j in [0, i]."""
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]


class RoleAssigner:
    """
    Assigns one role to every player in a roster.

    The quota table is keyed by inclusive [min_players, max_players] bands;
    mafia, detective and doctor counts are fixed per band and villagers fill
    the remaining seats.
    """

    def __init__(
        self,
        table: Sequence[RoleQuota] = ROLE_SETUPS,
        rng: Optional[random.Random] = None,
    ):
        validate_table(table)
        self.table = list(table)
        self.rng = rng or random.SystemRandom()

    @property
    def min_players(self) -> int:
        return self.table[0].min_players

    @property
    def max_players(self) -> int:
        return self.table[-1].max_players

    def quota_for(self, count: int) -> RoleQuota:
        for band in self.table:
            if band.covers(count):
                return band
        raise InvalidPlayerCount(count, self.min_players, self.max_players)

    def role_counts(self, count: int) -> RoleCounts:
        band = self.quota_for(count)
        return RoleCounts(
            mafia=band.mafia,
            detective=band.detective,
            doctor=band.doctor,
            villager=band.villagers_for(count),
        )

    def build_tokens(self, count: int) -> List[Role]:
        """Unshuffled role tokens: mafia, then detective, then doctor, then villagers."""
        band = self.quota_for(count)
        tokens: List[Role] = []
        tokens.extend([Role.MAFIA] * band.mafia)
        tokens.extend([Role.DETECTIVE] * band.detective)
        tokens.extend([Role.DOCTOR] * band.doctor)
        tokens.extend([Role.VILLAGER] * (count - len(tokens)))
        return tokens

    def assign(self, players: Sequence[Player]) -> List[Player]:
        """
        Return a new roster with a freshly shuffled role on every player.

        Player identity and order are preserved; only the role tokens are
        permuted. Every player comes back alive. Raises InvalidPlayerCount
        when the roster size is outside the table.
        """
        tokens = self.build_tokens(len(players))
        fisher_yates_shuffle(tokens, self.rng)
        return [
            player.model_copy(update={"role": role, "is_alive": True})
            for player, role in zip(players, tokens)
        ]

    def lobby_summary(self, count: int) -> Optional[Dict[str, Any]]:
        """Role breakdown shown in the lobby, or None when the head count can't start."""
        try:
            counts = self.role_counts(count)
        except InvalidPlayerCount:
            return None
        return {"player_count": count, "roles": counts.model_dump()}


def validate_distribution(players: Sequence[Player]) -> None:
    """
    Sanity-check an assigned roster.

    Mafia may hold at most a third of the seats (rounded up), and the village
    must have at least one detective and one doctor.
    """
    roles = [p.role for p in players]
    mafia = roles.count(Role.MAFIA)
    if mafia > math.ceil(len(players) / 3):
        raise InvalidRoleDistribution("Too many mafia players")
    if roles.count(Role.DETECTIVE) < 1:
        raise InvalidRoleDistribution("Game must have at least one detective")
    if roles.count(Role.DOCTOR) < 1:
        raise InvalidRoleDistribution("Game must have at least one doctor")


# Module-level singleton
role_assigner = RoleAssigner()
