"""
Win condition evaluation — pure, no I/O.

Mafia wins once it can no longer be outvoted: every villager-team player is
dead, or living mafia are at least as many as living villagers.
Villagers win once no mafia is left alive.

The evaluator never mutates state; the game master decides whether to move
the room to ENDED.
"""
from typing import Sequence, Tuple

from models.game import Player, Role, WinCheck, Winner


def count_living(players: Sequence[Player]) -> Tuple[int, int]:
    """Return (living_mafia, living_villagers). Unassigned seats count for neither side."""
    living_mafia = 0
    living_villagers = 0
    for p in players:
        if not p.is_alive or p.role == Role.UNASSIGNED:
            continue
        if p.role == Role.MAFIA:
            living_mafia += 1
        else:
            living_villagers += 1
    return living_mafia, living_villagers


def evaluate(players: Sequence[Player]) -> WinCheck:
    living_mafia, living_villagers = count_living(players)

    if living_mafia >= 1 and (living_villagers == 0 or living_mafia >= living_villagers):
        return WinCheck(over=True, winner=Winner.MAFIA)

    if living_mafia == 0 and living_villagers > 0:
        return WinCheck(over=True, winner=Winner.VILLAGERS)

    # Mixed board, or nobody alive at all (not reachable through eliminations)
    return WinCheck(over=False, winner=None)
