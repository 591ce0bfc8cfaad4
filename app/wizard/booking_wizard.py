from __future__ import annotations

import asyncio
import uuid
from datetime import date
from typing import Any

from pydantic import ValidationError

from app.core.logging import get_logger
from app.core.settings import settings
from app.schemas.counselling import BookingFormData, BookingResult
from app.schemas.counsellors import CounsellorOut
from app.services.booking_validator import (
    STEP_ORDER,
    BookingStep,
    can_advance,
    step_index,
    validate_step,
)
from app.utils.tz import today_local
from app.wizard.api_client import ApiTransportError, CounsellingApiClient
from app.wizard.date_navigator import DateNavigator
from app.wizard.slot_index import SlotIndex

log = get_logger(__name__)

BOOKING_FAILED = "Failed to create booking. Please try again."
SLOTS_FAILED = "Failed to load available times. Please try again."
TERMS_REQUIRED = "Please accept the terms and conditions"


def _new_idempotency_key() -> str:
    return uuid.uuid4().hex


class BookingWizard:
    """
    Estado do fluxo counsellor -> datetime -> details -> confirm -> success.

    Todo o agregado vive em `form` (BookingFormData); voltar etapas nunca
    apaga dados. O avanço só acontece quando `can_advance` da etapa atual é
    verdadeiro.
    """

    def __init__(
        self,
        api: CounsellingApiClient,
        today: date | None = None,
        advance_delay: float | None = None,
        require_terms: bool = False,
    ) -> None:
        self.api = api
        self.today = today or today_local()
        self.advance_delay = (
            settings.WIZARD_ADVANCE_DELAY_SECONDS if advance_delay is None else advance_delay
        )
        self.require_terms = require_terms
        self._slot_request_id = 0
        self._start()

    def _start(self) -> None:
        self.step = BookingStep.COUNSELLOR
        self.form = BookingFormData(country=settings.WIZARD_INITIAL_COUNTRY)
        self.field_errors: dict[str, str] = {}
        self.navigator = DateNavigator(self.today)
        self.slot_index = SlotIndex()
        self.slots_loading = False
        self.slots_error: str | None = None
        self.terms_accepted = False
        self.submitting = False
        self.booking_error: str | None = None
        self.result: BookingResult | None = None
        self.idempotency_key = _new_idempotency_key()
        self._last_attempt: BookingFormData | None = None

    # ---------- agregado ----------

    def _update(self, **changes: Any) -> None:
        data = self.form.model_dump()
        data.update(changes)
        self.form = BookingFormData.model_validate(data)

    async def set_field(self, name: str, value: Any) -> bool:
        """
        Atualiza um campo do agregado. Valor inválido (ex.: texto acima do
        limite) vira erro do campo e o agregado fica como estava.
        """
        if name not in BookingFormData.model_fields:
            raise KeyError(name)
        previous = getattr(self.form, name)
        try:
            self._update(**{name: value})
        except ValidationError as exc:
            self.field_errors[name] = exc.errors()[0]["msg"]
            return False
        # limpa o erro do campo na hora, sem revalidar
        self.field_errors.pop(name, None)

        if name in ("booking_type", "session_duration") and value != previous:
            await self.refresh_slots()
        return True

    # ---------- slots ----------

    async def refresh_slots(self) -> bool:
        """
        Busca slots do counsellor/modalidade atuais. Respostas fora de ordem
        são descartadas: só a requisição mais recente pode gravar o índice.
        """
        if not self.form.counsellor_id:
            self.slot_index = SlotIndex()
            return False

        self._slot_request_id += 1
        request_id = self._slot_request_id
        self.slots_loading = True
        self.slots_error = None
        try:
            slots = await self.api.fetch_slots(
                self.form.counsellor_id,
                self.form.booking_type,
                self.form.session_duration,
            )
        except ApiTransportError as exc:
            if request_id == self._slot_request_id:
                log.warning("wizard.slots_failed", error=str(exc))
                self.slots_error = SLOTS_FAILED
                self.slots_loading = False
            return False

        if request_id != self._slot_request_id:
            log.debug("wizard.slots_stale", request_id=request_id)
            return False

        self.slot_index = SlotIndex(slots)
        self.slots_loading = False
        return True

    # ---------- seleção ----------

    async def select_counsellor(self, counsellor: CounsellorOut | str) -> None:
        counsellor_id = counsellor if isinstance(counsellor, str) else counsellor.id
        if counsellor_id != self.form.counsellor_id:
            # horário escolhido pertence ao counsellor anterior
            self._update(counsellor_id=counsellor_id, preferred_date="", preferred_time="")
        self.field_errors.pop("counsellor_id", None)

        await self.refresh_slots()
        if self.advance_delay:
            await asyncio.sleep(self.advance_delay)
        if self.step == BookingStep.COUNSELLOR:
            self.step = BookingStep.DATETIME

    def select_date(self, day: date) -> bool:
        if not self.navigator.is_selectable(day, self.slot_index):
            return False
        iso = day.isoformat()
        if iso != self.form.preferred_date:
            self._update(preferred_date=iso, preferred_time="")
        self.field_errors.pop("preferred_date", None)
        return True

    def select_time(self, start_time: str) -> bool:
        if not self.form.preferred_date:
            return False
        if start_time not in self.slot_index.times_for(self.form.preferred_date):
            return False
        self._update(preferred_time=start_time)
        self.field_errors.pop("preferred_time", None)
        return True

    def available_times(self) -> list[str]:
        if not self.form.preferred_date:
            return []
        return self.slot_index.times_for(self.form.preferred_date)

    # ---------- navegação ----------

    def can_advance(self) -> bool:
        if self.step == BookingStep.CONFIRM:
            return False  # confirm só sai via submit()
        return can_advance(self.step, self.form)

    def next_step(self) -> bool:
        if self.step in (BookingStep.CONFIRM, BookingStep.SUCCESS):
            return False
        errors = validate_step(self.step, self.form)
        if errors:
            self.field_errors.update(errors)
            return False
        self.step = STEP_ORDER[step_index(self.step) + 1]
        return True

    def go_to_step(self, target: BookingStep) -> bool:
        if self.step == BookingStep.SUCCESS or target == BookingStep.SUCCESS:
            return False

        current = step_index(self.step)
        wanted = step_index(target)
        if wanted > current:
            for step in STEP_ORDER[current:wanted]:
                if not can_advance(step, self.form):
                    return False
        self.step = target
        return True

    # ---------- envio ----------

    async def submit(self) -> bool:
        if self.step != BookingStep.CONFIRM or self.submitting:
            return False
        if self.require_terms and not self.terms_accepted:
            self.booking_error = TERMS_REQUIRED
            return False

        frozen = self.form.model_copy(deep=True)
        # formulário mudou desde a última tentativa: é outra reserva
        if self._last_attempt is not None and frozen != self._last_attempt:
            self.idempotency_key = _new_idempotency_key()
        self._last_attempt = frozen
        self.submitting = True
        self.booking_error = None
        try:
            envelope = await self.api.create_booking(frozen, self.idempotency_key)
        except ApiTransportError as exc:
            log.warning("wizard.submit_failed", error=str(exc))
            self.booking_error = BOOKING_FAILED
            return False
        finally:
            self.submitting = False

        if not envelope.success:
            self.booking_error = envelope.message or BOOKING_FAILED
            return False

        self.result = envelope.data
        self.step = BookingStep.SUCCESS
        log.info(
            "wizard.booked", confirmation_number=self.result.confirmation_number
        )
        return True

    def reset(self) -> None:
        self._start()
