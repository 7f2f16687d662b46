import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings, settings
from agents.game_master import GameMaster
from agents.role_assigner import RoleAssigner
from agents.session_validator import SessionValidator
from models.errors import GameError, TooManyRequests
from services.broadcaster import ConnectionManager
from services.rate_limiter import RateLimiter
from services.room_registry import RoomRegistry
from services.room_store import RoomStore, build_room_store

logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Mafia rooms backend starting up...")
    yield
    await app.state.game_master.shutdown()
    logger.info("Backend shutting down.")


async def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    headers = {}
    if isinstance(exc, TooManyRequests):
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()}, headers=headers)


def create_app(
    cfg: Settings = settings,
    store: Optional[RoomStore] = None,
    assigner: Optional[RoleAssigner] = None,
) -> FastAPI:
    """Wire the engine together. Every collaborator is built here and hung off app.state."""
    app = FastAPI(
        title="Mafia Rooms",
        version="0.1.0",
        description="Room sessions and role assignment for a party game of Mafia",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(GameError, game_error_handler)

    registry = RoomRegistry(
        store if store is not None else build_room_store(cfg),
        min_players=cfg.min_players,
        max_players=cfg.max_players,
        code_length=cfg.room_code_length,
    )
    connection_manager = ConnectionManager()
    app.state.registry = registry
    app.state.connection_manager = connection_manager
    app.state.game_master = GameMaster(
        registry,
        connection_manager,
        assigner=assigner,
        host_disconnect_grace_seconds=cfg.host_disconnect_grace_seconds,
    )
    app.state.session_validator = SessionValidator(registry)
    app.state.rate_limiter = RateLimiter(
        cfg.rate_limit_requests,
        cfg.rate_limit_window_seconds,
        trust_forwarded_for=cfg.trust_forwarded_for,
    )

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": "mafia-rooms", "version": "0.1.0"}

    from routers.game_router import router as game_router
    from routers.ws_router import router as ws_router

    app.include_router(game_router, prefix="/api")
    app.include_router(ws_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
