import asyncio
import os
from typing import Any, Optional

from models.game import Room
from config import Settings, settings


class FirestoreRoomStore:
    """
    Async-friendly Firestore room store using run_in_executor to avoid
    blocking the event loop. Switch to AsyncClient once stable.

    Layout: collection `settings.firestore_collection`, one document per
    room code, players nested as a list inside the room document.
    """

    def __init__(self, client: Optional[Any] = None, cfg: Settings = settings):
        if client is None:
            if cfg.firestore_emulator_host:
                os.environ["FIRESTORE_EMULATOR_HOST"] = cfg.firestore_emulator_host
            # Lazy import so the service can be instantiated before GCP creds exist
            from google.cloud import firestore
            client = firestore.Client(project=cfg.google_cloud_project or None)
        self.db = client
        self.collection = cfg.firestore_collection

    def _run(self, fn):
        """Run a sync Firestore call in the default thread pool."""
        loop = asyncio.get_running_loop()
        return loop.run_in_executor(None, fn)

    def _room_ref(self, code: str):
        return self.db.collection(self.collection).document(code)

    # ── Room CRUD ─────────────────────────────────────────────────────────────

    async def get(self, code: str) -> Optional[Room]:
        doc = await self._run(lambda: self._room_ref(code).get())
        if doc.exists:
            return Room.model_validate(doc.to_dict())
        return None

    async def put(self, room: Room) -> None:
        data = room.model_dump(mode="json")
        await self._run(lambda: self._room_ref(room.code).set(data))

    async def delete(self, code: str) -> None:
        await self._run(lambda: self._room_ref(code).delete())

    async def exists(self, code: str) -> bool:
        doc = await self._run(lambda: self._room_ref(code).get())
        return bool(doc.exists)
