"""
WebSocket Hub — subscription to a room's event channel.

URL: /ws/{code}?playerId={player_id}          (player)
     /ws/{code}?host=true&hostCode={code}     (host)

Connection flow:
  1. Validate the room exists (close 4404) and the session claim (close 4403)
  2. Subscribe the socket to channel `game-<code>` under a per-socket id
  3. Under the room lock, send a private "connected" message with the room
     snapshot and, for a player, their own up-to-date record (role included)
  4. Message loop: "ping" → "pong"; anything else → "error"
  5. On disconnect: unsubscribe; once the last host socket is gone, schedule
     room cleanup

Room events (player-joined, game-started, ...) are pushed by the game master
through the shared ConnectionManager, never from here.
"""
import json
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from agents.game_master import GameMaster
from agents.session_validator import SessionValidator
from models.errors import InvalidSession
from models.game import room_channel
from services.broadcaster import ConnectionManager, connection_id
from services.room_registry import normalize_code

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

HOST_KIND = "host"


@router.websocket("/ws/{code}")
async def websocket_endpoint(
    ws: WebSocket,
    code: str,
    playerId: Optional[str] = Query(None, description="Player id from the join response"),
    host: bool = Query(False),
    hostCode: Optional[str] = Query(None, description="Room code the host client remembers creating"),
):
    code = normalize_code(code)
    gm: GameMaster = ws.app.state.game_master
    validator: SessionValidator = ws.app.state.session_validator
    manager: ConnectionManager = ws.app.state.connection_manager
    channel = room_channel(code)

    # ── Validate room and session claim ───────────────────────────────────────
    if not await gm.registry.get(code):
        await ws.close(code=4404, reason="Room not found")
        return

    if host:
        if not await validator.validate_host(code, hostCode):
            await ws.close(code=4403, reason="Not the host of this room")
            return
        client_id = connection_id(HOST_KIND)
    else:
        if not playerId:
            await ws.close(code=4403, reason="playerId required")
            return
        if not await validator.validate_player(code, playerId):
            await ws.close(code=4403, reason="Player not found in this room")
            return
        client_id = connection_id(f"player:{playerId}")

    # ── Accept and register ────────────────────────────────────────────────────
    await manager.connect(channel, client_id, ws)
    if host:
        gm.host_connected(code)

    try:
        # Snapshot under the room lock, after subscribing: every change is either
        # in the snapshot or arrives as an event after it.
        async with gm.registry.lock(code):
            room = await gm.registry.get(code)
            if room is None:
                await ws.close(code=4404, reason="Room not found")
                return
            player = None
            if not host:
                try:
                    player = await validator.reconnect(code, playerId)
                except InvalidSession:
                    await ws.close(code=4403, reason="Player not found in this room")
                    return
            await manager.send_to(channel, client_id, {
                "type": "connected",
                "room": room.model_dump(mode="json"),
                "player": player.model_dump(mode="json") if player else None,
            })

        # ── Message loop ───────────────────────────────────────────────────────
        while True:
            raw = await ws.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await manager.send_to(channel, client_id, {
                    "type": "error",
                    "message": "Invalid JSON",
                    "code": "PARSE_ERROR",
                })
                continue
            await _dispatch_message(manager, channel, client_id, data)

    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(channel, client_id)
        if host:
            remaining = manager.count(channel, kind=HOST_KIND)
            logger.info(f"[{code}] Host socket closed ({remaining} host connections left)")
            if remaining == 0:
                gm.host_disconnected(code)


async def _dispatch_message(
    manager: ConnectionManager,
    channel: str,
    client_id: str,
    data: Dict,
) -> None:
    msg_type = data.get("type", "") if isinstance(data, dict) else ""
    if msg_type == "ping":
        await manager.send_to(channel, client_id, {"type": "pong"})
    else:
        await manager.send_to(channel, client_id, {
            "type": "error",
            "message": f"Unknown message type: '{msg_type}'",
            "code": "UNKNOWN_TYPE",
        })
