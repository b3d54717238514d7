from __future__ import annotations

from collections.abc import Collection
from datetime import datetime

from ..errors import FormValidationError
from ..schemas import AppointmentForm
from .formatters import DISPLAY_DATE_PATTERN, is_date_in_past, is_time_in_past

NAME_REQUIRED = "Nome é obrigatório"
PHONE_REQUIRED = "Telefone é obrigatório"
DATE_REQUIRED = "Data é obrigatória"
DATE_FORMAT = "Data deve estar no formato DD/MM/AAAA"
DATE_IN_PAST = "Não é possível agendar para datas passadas"
TIME_IN_PAST = "Não é possível agendar para horários passados"
SLOT_TAKEN = "Este horário já está ocupado. Escolha outro horário."


def validate_appointment_form(
    form: AppointmentForm,
    occupied: Collection[str] = (),
    editing: bool = False,
    now: datetime | None = None,
) -> str | None:
    """Return the message for the first rule the form breaks, or None."""
    now = now or datetime.now()
    if not form.nome.strip():
        return NAME_REQUIRED
    if not form.telefone.strip():
        return PHONE_REQUIRED
    if not form.data.strip():
        return DATE_REQUIRED
    if not DISPLAY_DATE_PATTERN.match(form.data):
        return DATE_FORMAT
    if is_date_in_past(form.data, now.date()):
        return DATE_IN_PAST
    if is_time_in_past(form.data, form.horario, now):
        return TIME_IN_PAST
    if not editing and form.horario in occupied:
        return SLOT_TAKEN
    return None


def ensure_valid_form(
    form: AppointmentForm,
    occupied: Collection[str] = (),
    editing: bool = False,
    now: datetime | None = None,
) -> None:
    message = validate_appointment_form(form, occupied, editing, now)
    if message:
        raise FormValidationError(message)
