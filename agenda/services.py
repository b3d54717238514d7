from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from .auth.admin import validate_admin_access
from .errors import AccessDeniedError, FormValidationError, LoginError
from .remote.client import ApiClient
from .remote.repository import AppointmentRepository
from .schemas import DEFAULT_SERVICE, DEFAULT_SLOT, Appointment, AppointmentForm
from .store import AuthSession
from .tools.formatters import date_key, only_digits
from .tools.slots import SlotAvailability, compute_availability
from .tools.validation import ensure_valid_form

logger = logging.getLogger(__name__)

CREDENTIALS_REQUIRED = "Preencha email e senha"
ACCESS_DENIED = "Acesso negado. Apenas administradores podem entrar."
ID_MISSING = "ID do agendamento não encontrado"


class LoginService:
    def __init__(self, client: ApiClient, session: AuthSession) -> None:
        self.client = client
        self.session = session

    async def login(self, email: str, password: str) -> dict[str, Any]:
        if not email.strip() or not password.strip():
            raise LoginError(CREDENTIALS_REQUIRED)
        user, token = await self.client.login(email, password)
        if not validate_admin_access(user, token):
            logger.info("Login refused for a non-administrator account")
            raise AccessDeniedError(ACCESS_DENIED)
        return self.session.login(user, token)

    def logout(self) -> None:
        self.session.logout()


def form_from_appointment(appointment: Appointment) -> AppointmentForm:
    """Prefill the edit form, showing ISO dates as DD/MM/YYYY."""
    data = appointment.data
    parts = data.split("-")
    if len(data) == 10 and len(parts) == 3:
        year, month, day = parts
        data = f"{day}/{month}/{year}"
    return AppointmentForm(
        nome=appointment.nome,
        telefone=appointment.telefone,
        servico=appointment.servico or DEFAULT_SERVICE,
        data=data,
        horario=appointment.horario or DEFAULT_SLOT,
    )


def build_payload(form: AppointmentForm) -> dict[str, str]:
    return {
        "nome": form.nome.strip(),
        "telefone": only_digits(form.telefone),
        "servico": form.servico,
        "data": date_key(form.data) or form.data,
        "horario": form.horario,
    }


class AppointmentService:
    def __init__(self, repository: AppointmentRepository) -> None:
        self.repository = repository

    async def list_all(self) -> list[Appointment]:
        return await self.repository.list_all()

    async def availability(
        self, date: str | None, editing: Appointment | None = None
    ) -> SlotAvailability:
        if date_key(date) is None:
            return compute_availability([], None)
        appointments = await self.repository.list_all()
        return compute_availability(appointments, date, editing)

    async def save(
        self,
        form: AppointmentForm,
        editing: Appointment | None = None,
        now: datetime | None = None,
    ) -> dict[str, str]:
        # rules that need no network round trip go first
        ensure_valid_form(form, editing=True, now=now)
        if editing is None:
            availability = await self.availability(form.data)
            ensure_valid_form(form, availability.occupied, now=now)
        payload = build_payload(form)
        if editing is None:
            await self.repository.create(payload)
            logger.info("Created appointment on %s at %s", payload["data"], payload["horario"])
            return payload
        if editing.id is None or editing.id == "":
            raise FormValidationError(ID_MISSING)
        await self.repository.update(editing.id, payload)
        logger.info("Updated appointment %s", editing.id)
        return payload

    async def delete(self, appointment: Appointment) -> None:
        if appointment.id is None or appointment.id == "":
            raise FormValidationError(ID_MISSING)
        await self.repository.delete(appointment.id)
        logger.info("Deleted appointment %s", appointment.id)
