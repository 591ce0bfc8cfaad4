from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx

from app.core.logging import get_logger
from app.core.settings import settings
from app.schemas.counselling import BookingFormData, BookingResult, TimeSlotOut
from app.schemas.counsellors import CounsellorOut

log = get_logger(__name__)


class ApiTransportError(Exception):
    """Rede caiu, timeout, ou resposta sem envelope {success: ...}."""


@dataclass
class ApiEnvelope:
    success: bool
    data: Any = None
    error: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str | None:
        if self.error:
            return self.error
        if self.errors:
            return ", ".join(self.errors)
        return None


class CounsellingApiClient:
    """Cliente assíncrono da API /api/counsellors e /api/counselling."""

    def __init__(
        self,
        base_url: str | None = None,
        http: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            base_url=(base_url or settings.COUNSELLING_API_BASE_URL).rstrip("/") + "/",
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> CounsellingApiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> ApiEnvelope:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            log.warning("api.transport_error", method=method, path=path, error=str(exc))
            raise ApiTransportError(str(exc)) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise ApiTransportError(
                f"{method} {path} returned a non-JSON body ({response.status_code})"
            ) from exc

        if not isinstance(body, dict) or "success" not in body:
            raise ApiTransportError(
                f"{method} {path} returned {response.status_code} without an envelope"
            )

        return ApiEnvelope(
            success=bool(body["success"]),
            data=body.get("data"),
            error=body.get("error"),
            errors=list(body.get("errors") or []),
        )

    async def list_counsellors(self, include_inactive: bool = False) -> list[CounsellorOut]:
        params = {"includeInactive": "true"} if include_inactive else None
        env = await self._request("GET", "counsellors", params=params)
        if not env.success:
            raise ApiTransportError(env.message or "Failed to load counsellors")
        return [CounsellorOut.model_validate(c) for c in (env.data or {}).get("counsellors", [])]

    async def fetch_slots(
        self,
        counsellor_id: str | None = None,
        booking_type: str | None = None,
        session_duration: int | None = None,
    ) -> list[TimeSlotOut]:
        params: dict[str, str] = {}
        if counsellor_id:
            params["counsellorId"] = counsellor_id
        if booking_type:
            params["bookingType"] = booking_type
        if session_duration:
            params["sessionDuration"] = str(session_duration)
        env = await self._request("GET", "counselling", params=params)
        if not env.success:
            raise ApiTransportError(env.message or "Failed to load time slots")
        data = env.data or {}
        # servidores antigos devolvem "slots" em vez de "availableSlots"
        raw = data.get("availableSlots", data.get("slots", []))
        return [TimeSlotOut.model_validate(s) for s in raw]

    async def create_booking(
        self, form: BookingFormData, idempotency_key: str | None = None
    ) -> ApiEnvelope:
        """
        Devolve o envelope tal como veio (sucesso ou recusa de negócio).
        Em sucesso, `data` já vem como BookingResult.
        """
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        env = await self._request(
            "POST", "counselling", json=form.to_payload(), headers=headers
        )
        if env.success:
            env.data = BookingResult.model_validate(env.data)
        return env

    async def cancel_booking(self, confirmation_number: str, email: str) -> ApiEnvelope:
        return await self._request(
            "DELETE",
            "counselling",
            params={"confirmationNumber": confirmation_number, "email": email},
        )
