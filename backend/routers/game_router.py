"""
Room HTTP endpoints.

Routes:
  POST /api/rooms                          — Create a room (host)
  GET  /api/rooms/{code}                   — Room state (+ lobby role breakdown while waiting)
  POST /api/rooms/{code}/join              — Player joins the lobby
  POST /api/rooms/{code}/start             — Host starts the game (deals roles)
  POST /api/rooms/{code}/shuffle           — Host re-deals roles mid-game
  POST /api/rooms/{code}/reset             — Host returns the room to the lobby
  POST /api/rooms/{code}/eliminate         — Host eliminates a player
  POST /api/rooms/{code}/end               — Host closes the room
  POST /api/rooms/{code}/leave             — Player leaves
  GET  /api/rooms/{code}/session           — Validate a host or player session claim
  GET  /api/rooms/{code}/players/{id}      — Reconnect: a player's current record

Engine errors (GameError) are mapped to HTTP responses by the handler
registered in main.py.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from agents.game_master import GameMaster
from agents.session_validator import SessionValidator
from models.game import (
    CreateRoomRequest,
    EliminateRequest,
    EndGameRequest,
    JoinRoomRequest,
    LeaveRoomRequest,
    Player,
    Room,
    RoomResponse,
    RoomStatus,
    RosterResponse,
    SessionResponse,
    WinCheck,
)
from services.rate_limiter import rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rooms"], dependencies=[Depends(rate_limit)])


def get_game_master(request: Request) -> GameMaster:
    return request.app.state.game_master


def get_session_validator(request: Request) -> SessionValidator:
    return request.app.state.session_validator


def _roster(room: Room) -> RosterResponse:
    return RosterResponse(code=room.code, status=room.status, players=room.players, roles=room.roles)


@router.post("/rooms", response_model=Room, status_code=201)
async def create_room(body: CreateRoomRequest, gm: GameMaster = Depends(get_game_master)):
    """Create a new room in the lobby state. The client remembers the code as its host claim."""
    return await gm.create_room(body.host_name)


@router.get("/rooms/{code}", response_model=RoomResponse)
async def get_room(code: str, gm: GameMaster = Depends(get_game_master)):
    """
    Room state, roles included.
    Every subscriber to the room channel sees every role; clients show only their own.
    """
    room = await gm.get_room(code)
    summary = (
        gm.assigner.lobby_summary(len(room.players))
        if room.status == RoomStatus.WAITING
        else None
    )
    return RoomResponse(**room.model_dump(), lobby_summary=summary)


@router.post("/rooms/{code}/join", response_model=Player)
async def join_room(code: str, body: JoinRoomRequest, gm: GameMaster = Depends(get_game_master)):
    """Add a player to the lobby. Rejected when the room is full or the game has started."""
    return await gm.join_room(code, body.player_name)


@router.post("/rooms/{code}/start", response_model=RosterResponse)
async def start_game(code: str, gm: GameMaster = Depends(get_game_master)):
    """Deal roles to the whole roster and start the game."""
    return _roster(await gm.start_game(code))


@router.post("/rooms/{code}/shuffle", response_model=RosterResponse)
async def shuffle_roles(code: str, gm: GameMaster = Depends(get_game_master)):
    """Re-deal roles mid-game; every player is revived."""
    return _roster(await gm.shuffle_roles(code))


@router.post("/rooms/{code}/reset", response_model=Room)
async def reset_game(code: str, gm: GameMaster = Depends(get_game_master)):
    return await gm.reset_game(code)


@router.post("/rooms/{code}/eliminate", response_model=WinCheck)
async def eliminate_player(code: str, body: EliminateRequest, gm: GameMaster = Depends(get_game_master)):
    """Eliminate a player and report whether that ended the game."""
    return await gm.eliminate_player(code, body.player_id)


@router.post("/rooms/{code}/end", status_code=204)
async def end_game(
    code: str,
    body: Optional[EndGameRequest] = None,
    gm: GameMaster = Depends(get_game_master),
):
    reason = (body or EndGameRequest()).reason
    await gm.end_game(code, reason)
    return Response(status_code=204)


@router.post("/rooms/{code}/leave", status_code=204)
async def leave_room(code: str, body: LeaveRoomRequest, gm: GameMaster = Depends(get_game_master)):
    await gm.leave_room(code, body.player_id)
    return Response(status_code=204)


@router.get("/rooms/{code}/session", response_model=SessionResponse)
async def validate_session(
    code: str,
    player_id: Optional[str] = Query(None, description="Omit for the host form"),
    host_code: Optional[str] = Query(None, description="Room code the host client remembers creating"),
    validator: SessionValidator = Depends(get_session_validator),
):
    """
    Advisory session check — not authentication.
    player_id → roster membership; host_code → remembered host code matches; neither → room is live.
    """
    if player_id is not None:
        valid = await validator.validate_player(code, player_id)
    elif host_code is not None:
        valid = await validator.validate_host(code, host_code)
    else:
        valid = await validator.validate_session(code)
    return SessionResponse(valid=valid)


@router.get("/rooms/{code}/players/{player_id}", response_model=Player)
async def reconnect(
    code: str,
    player_id: str,
    validator: SessionValidator = Depends(get_session_validator),
):
    """Recover a player's current record (and role) after a reload or dropped connection."""
    return await validator.reconnect(code, player_id)
