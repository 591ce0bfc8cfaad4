from __future__ import annotations

from app.core.logging import get_logger
from app.schemas.counsellors import CounsellorOut
from app.wizard.api_client import ApiTransportError, CounsellingApiClient

log = get_logger(__name__)

LOAD_FAILED = "Failed to load counsellors. Please try again."


class CounsellorDirectory:
    def __init__(self, api: CounsellingApiClient) -> None:
        self._api = api
        self.counsellors: list[CounsellorOut] = []
        self.loaded = False
        self.error: str | None = None

    async def load(self) -> bool:
        """Carrega a lista; chamar de novo após erro é o retry."""
        try:
            self.counsellors = await self._api.list_counsellors()
        except ApiTransportError as exc:
            log.warning("directory.load_failed", error=str(exc))
            self.error = LOAD_FAILED
            return False
        self.error = None
        self.loaded = True
        return True

    def for_modality(self, booking_type: str) -> list[CounsellorOut]:
        if booking_type == "online":
            return [c for c in self.counsellors if c.is_online]
        return [c for c in self.counsellors if c.is_in_person]

    def get(self, counsellor_id: str) -> CounsellorOut | None:
        return next((c for c in self.counsellors if c.id == counsellor_id), None)
