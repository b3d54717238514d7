from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SERVICE = "corte"
DEFAULT_SLOT = "09:00"
ID_KEYS = ("id", "_id", "agendamento_id", "id_agendamento", "codigo")


class Appointment(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | int | None = None
    nome: str = ""
    telefone: str = ""
    servico: str = DEFAULT_SERVICE
    data: str = ""
    horario: str = ""

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Appointment":
        """Build an appointment from a raw API record, tolerating alternate key names."""
        payload = {key: value for key, value in record.items() if key not in ID_KEYS and key != "hora"}
        payload["id"] = next(
            (record[key] for key in ID_KEYS if record.get(key) is not None),
            None,
        )
        horario = record.get("horario")
        if horario is None:
            horario = record.get("hora")
        payload["horario"] = horario
        for key in ("nome", "telefone", "servico", "data", "horario"):
            if payload.get(key) is None:
                payload.pop(key, None)
            else:
                payload[key] = str(payload[key])
        return cls.model_validate(payload)


class AppointmentForm(BaseModel):
    nome: str = ""
    telefone: str = ""
    servico: str = DEFAULT_SERVICE
    data: str = ""
    horario: str = DEFAULT_SLOT


class ApiResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool = False
    data: Any = None
    message: str | None = None


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class AdminSession(BaseModel):
    authenticated: bool
    is_admin: bool = False
    user: dict[str, Any] | None = None


class AvailabilityResponse(BaseModel):
    date: str | None
    slots: list[str]
    occupied: list[str] = Field(default_factory=list)
    available: list[str] = Field(default_factory=list)
    no_slots_available: bool = False
    message: str | None = None


class AppointmentPage(BaseModel):
    items: list[Appointment]
    total: int
    page: int
    has_more: bool
