from __future__ import annotations

import asyncio
import random
from typing import List

import pytest

from models.errors import RoomCodeExhausted, RoomNotFound
from models.game import RoomStatus
from services.room_registry import CODE_ALPHABET, RoomRegistry, normalize_code
from services.room_store import MemoryRoomStore


class ScriptedRandom(random.Random):
    """Hands out characters from a fixed script, so room codes are predictable."""

    def __init__(self, script: str) -> None:
        super().__init__(0)
        self._script: List[str] = list(script)

    def choice(self, seq):  # type: ignore[override]
        return self._script.pop(0)


class TestCreate:
    @pytest.mark.asyncio
    async def test_new_room_is_waiting(self) -> None:
        store = MemoryRoomStore()
        registry = RoomRegistry(store, min_players=6, max_players=10)

        room = await registry.create("Host")

        assert room.status == RoomStatus.WAITING
        assert room.host_name == "Host"
        assert (room.min_players, room.max_players) == (6, 10)
        assert len(room.code) == 6
        assert set(room.code) <= set(CODE_ALPHABET)
        assert await store.exists(room.code)

    @pytest.mark.asyncio
    async def test_redraws_on_collision(self, caplog: pytest.LogCaptureFixture) -> None:
        store = MemoryRoomStore()
        first = await RoomRegistry(store, rng=ScriptedRandom("AAAAAA")).create("Host 1")

        registry = RoomRegistry(store, rng=ScriptedRandom("AAAAAABBBBBB"))
        second = await registry.create("Host 2")

        assert first.code == "AAAAAA"
        assert second.code == "BBBBBB"
        assert len(store) == 2
        assert "collision" in caplog.text

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self) -> None:
        store = MemoryRoomStore()
        await RoomRegistry(store, rng=ScriptedRandom("AAAAAA")).create("Host")

        registry = RoomRegistry(store, rng=ScriptedRandom("A" * 6 * RoomRegistry.MAX_CODE_ATTEMPTS))
        with pytest.raises(RoomCodeExhausted):
            await registry.create("Host 2")
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_many_rooms_get_distinct_codes(self) -> None:
        registry = RoomRegistry(MemoryRoomStore(), rng=random.Random(1))
        codes = {(await registry.create(f"Host {i}")).code for i in range(50)}
        assert len(codes) == 50


class TestReadWrite:
    @pytest.mark.asyncio
    async def test_require_missing_room(self) -> None:
        registry = RoomRegistry(MemoryRoomStore())
        assert await registry.get("NOPE00") is None
        with pytest.raises(RoomNotFound, match="NOPE00"):
            await registry.require("NOPE00")

    @pytest.mark.asyncio
    async def test_replace_persists_changes(self) -> None:
        registry = RoomRegistry(MemoryRoomStore())
        room = await registry.create("Host")
        room.status = RoomStatus.STARTED

        await registry.replace(room.code, room)

        assert (await registry.require(room.code)).status == RoomStatus.STARTED

    @pytest.mark.asyncio
    async def test_replace_rejects_code_mismatch(self) -> None:
        registry = RoomRegistry(MemoryRoomStore())
        room = await registry.create("Host")
        with pytest.raises(ValueError, match="mismatch"):
            await registry.replace("OTHER1", room)

    @pytest.mark.asyncio
    async def test_reads_are_copies(self) -> None:
        registry = RoomRegistry(MemoryRoomStore())
        room = await registry.create("Host")

        fetched = await registry.require(room.code)
        fetched.status = RoomStatus.ENDED

        assert (await registry.require(room.code)).status == RoomStatus.WAITING

    @pytest.mark.asyncio
    async def test_delete_drops_room(self) -> None:
        registry = RoomRegistry(MemoryRoomStore())
        room = await registry.create("Host")

        async with registry.lock(room.code):
            await registry.delete(room.code)

        assert await registry.get(room.code) is None
        assert registry._locks == {}


class TestLocks:
    @pytest.mark.asyncio
    async def test_serializes_same_code(self) -> None:
        registry = RoomRegistry(MemoryRoomStore())
        trace: List[str] = []

        async def section(name: str) -> None:
            async with registry.lock("ABC123"):
                trace.append(f"{name}-in")
                await asyncio.sleep(0)
                await asyncio.sleep(0)
                trace.append(f"{name}-out")

        await asyncio.gather(section("a"), section("b"))

        assert trace == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.asyncio
    async def test_different_codes_do_not_block(self) -> None:
        registry = RoomRegistry(MemoryRoomStore())
        async with registry.lock("ABC123"):
            async with registry.lock("XYZ789"):
                assert set(registry._locks) == {"ABC123", "XYZ789"}

    @pytest.mark.asyncio
    async def test_lock_kept_while_waiters_remain(self) -> None:
        registry = RoomRegistry(MemoryRoomStore())
        entered = asyncio.Event()

        async def waiter() -> None:
            async with registry.lock("ABC123"):
                entered.set()

        async with registry.lock("ABC123"):
            task = asyncio.create_task(waiter())
            await asyncio.sleep(0)
            assert registry._lock_users["ABC123"] == 2

        await task
        assert entered.is_set()
        assert registry._locks == {}

    @pytest.mark.asyncio
    async def test_released_after_error(self) -> None:
        registry = RoomRegistry(MemoryRoomStore())
        with pytest.raises(RoomNotFound):
            async with registry.lock("NOPE00"):
                await registry.require("NOPE00")
        assert registry._locks == {}
        assert registry._lock_users == {}


def test_normalize_code() -> None:
    assert normalize_code("  abc123 ") == "ABC123"
