from __future__ import annotations

import enum
import re

from app.schemas.counselling import BookingFormData

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class BookingStep(str, enum.Enum):
    COUNSELLOR = "counsellor"
    DATETIME = "datetime"
    DETAILS = "details"
    CONFIRM = "confirm"
    SUCCESS = "success"


STEP_ORDER: tuple[BookingStep, ...] = tuple(BookingStep)


def step_index(step: BookingStep) -> int:
    return STEP_ORDER.index(step)


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


def validate_step(step: BookingStep, form: BookingFormData) -> dict[str, str]:
    """
    Erros de validação da etapa, por campo. Dict vazio = etapa completa.
    Chaves são os nomes dos campos em BookingFormData.
    """
    errors: dict[str, str] = {}

    if step == BookingStep.COUNSELLOR:
        if _blank(form.counsellor_id):
            errors["counsellor_id"] = "Please select a counsellor"

    elif step == BookingStep.DATETIME:
        if _blank(form.preferred_date):
            errors["preferred_date"] = "Please select a date"
        if _blank(form.preferred_time):
            errors["preferred_time"] = "Please select a time"

    elif step == BookingStep.DETAILS:
        if _blank(form.first_name):
            errors["first_name"] = "First name is required"
        if _blank(form.last_name):
            errors["last_name"] = "Last name is required"
        if _blank(form.email):
            errors["email"] = "Email is required"
        elif not EMAIL_RE.match(form.email):
            errors["email"] = "Please enter a valid email address"
        if _blank(form.phone):
            errors["phone"] = "Phone number is required"
        if _blank(form.country):
            errors["country"] = "Country is required"
        if _blank(form.topic):
            errors["topic"] = "Please specify a topic"

    # CONFIRM só resume o agregado; SUCCESS é terminal
    return errors


def can_advance(step: BookingStep, form: BookingFormData) -> bool:
    if step == BookingStep.SUCCESS:
        return False
    return not validate_step(step, form)


def validate_form_data(form: BookingFormData) -> list[str]:
    """Todas as regras do wizard de uma vez (usado pelo POST /counselling)."""
    messages: list[str] = []
    for step in (BookingStep.DETAILS, BookingStep.COUNSELLOR, BookingStep.DATETIME):
        messages.extend(validate_step(step, form).values())
    return messages
