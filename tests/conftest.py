from __future__ import annotations

import random

import pytest

from agents.game_master import GameMaster
from agents.role_assigner import RoleAssigner
from agents.session_validator import SessionValidator
from services.room_registry import RoomRegistry
from tests.helpers import RecordingBroadcaster, YieldingRoomStore


@pytest.fixture
def store() -> YieldingRoomStore:
    return YieldingRoomStore()


@pytest.fixture
def registry(store: YieldingRoomStore) -> RoomRegistry:
    return RoomRegistry(store, min_players=6, max_players=15, rng=random.Random(7))


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def assigner() -> RoleAssigner:
    return RoleAssigner(rng=random.Random(42))


@pytest.fixture
def game_master(
    registry: RoomRegistry,
    broadcaster: RecordingBroadcaster,
    assigner: RoleAssigner,
) -> GameMaster:
    return GameMaster(registry, broadcaster, assigner=assigner, host_disconnect_grace_seconds=0)


@pytest.fixture
def validator(registry: RoomRegistry) -> SessionValidator:
    return SessionValidator(registry)
