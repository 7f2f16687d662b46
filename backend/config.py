from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Room bounds — fixed per room at creation
    min_players: int = 6
    max_players: int = 15
    room_code_length: int = 6

    # Persistence backend: "memory" (single process) or "firestore"
    room_store: str = "memory"
    google_cloud_project: str = ""
    google_application_credentials: str = ""
    firestore_emulator_host: Optional[str] = None
    firestore_collection: str = "rooms"

    # Per-client request ceiling (fixed window)
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60
    # Key clients on the first X-Forwarded-For hop; only behind a proxy that sets it
    trust_forwarded_for: bool = False

    # Seconds to wait for the host to reconnect before the room is closed (0 = immediately)
    host_disconnect_grace_seconds: float = 30.0

    # CORS origins — set ALLOWED_ORIGINS env var for production (JSON list)
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )


settings = Settings()
