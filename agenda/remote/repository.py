from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Protocol

from ..errors import ApiError
from ..schemas import Appointment
from ..tools.listing import normalize_appointments
from .client import ApiClient

LIST_FAILED = "Erro ao buscar agendamentos"


class AppointmentRepository(Protocol):
    async def list_all(self) -> list[Appointment]:
        ...

    async def create(self, payload: dict) -> None:
        ...

    async def update(self, appointment_id: str | int, payload: dict) -> None:
        ...

    async def delete(self, appointment_id: str | int) -> None:
        ...


@dataclass
class InMemoryAppointmentRepository:
    store: dict[str, Appointment] = field(default_factory=dict)

    async def list_all(self) -> list[Appointment]:
        return list(self.store.values())

    async def create(self, payload: dict) -> None:
        appointment_id = uuid.uuid4().hex
        self.store[appointment_id] = Appointment(id=appointment_id, **payload)

    async def update(self, appointment_id: str | int, payload: dict) -> None:
        key = str(appointment_id)
        if key not in self.store:
            raise ApiError("Agendamento não encontrado", status=404)
        self.store[key] = Appointment(id=self.store[key].id, **payload)

    async def delete(self, appointment_id: str | int) -> None:
        if self.store.pop(str(appointment_id), None) is None:
            raise ApiError("Agendamento não encontrado", status=404)


class RemoteAppointmentRepository:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def list_all(self) -> list[Appointment]:
        response = await self.client.list_appointments()
        if not response.success or not isinstance(response.data, list):
            raise ApiError(response.message or LIST_FAILED, status=200, data=response.data)
        return normalize_appointments(response.data)

    async def create(self, payload: dict) -> None:
        await self.client.create_appointment(payload)

    async def update(self, appointment_id: str | int, payload: dict) -> None:
        await self.client.update_appointment(appointment_id, payload)

    async def delete(self, appointment_id: str | int) -> None:
        await self.client.delete_appointment(appointment_id)


def build_repository(client: ApiClient | None) -> AppointmentRepository:
    if client is None:
        return InMemoryAppointmentRepository()
    return RemoteAppointmentRepository(client)
