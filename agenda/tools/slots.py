from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..schemas import Appointment
from .formatters import date_key

FIRST_HOUR = 9
LAST_HOUR = 20
NO_SLOTS_MESSAGE = "Nenhum horário disponível para esta data"


@dataclass(frozen=True)
class SlotAvailability:
    date: str | None
    slots: list[str]
    occupied: list[str] = field(default_factory=list)
    available: list[str] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.date is not None

    @property
    def no_slots_available(self) -> bool:
        return self.resolved and not self.available

    @property
    def message(self) -> str | None:
        return NO_SLOTS_MESSAGE if self.no_slots_available else None


def generate_time_slots() -> list[str]:
    return [f"{hour:02d}:00" for hour in range(FIRST_HOUR, LAST_HOUR + 1)]


def _appointment_date(appointment: Appointment) -> str:
    return date_key(appointment.data) or appointment.data


def occupied_slots(
    appointments: Iterable[Appointment],
    date_iso: str,
    editing: Appointment | None = None,
) -> list[str]:
    taken = [
        appointment.horario
        for appointment in appointments
        if appointment.horario and _appointment_date(appointment) == date_iso
    ]
    if editing is not None and editing.horario:
        # The slot being edited stays selectable for its own appointment.
        taken = [slot for slot in taken if slot != editing.horario]
    return taken


def compute_availability(
    appointments: Iterable[Appointment],
    date: str | None,
    editing: Appointment | None = None,
) -> SlotAvailability:
    slots = generate_time_slots()
    date_iso = date_key(date)
    if date_iso is None:
        return SlotAvailability(date=None, slots=slots, available=list(slots))
    taken = occupied_slots(appointments, date_iso, editing)
    return SlotAvailability(
        date=date_iso,
        slots=slots,
        occupied=taken,
        available=[slot for slot in slots if slot not in taken],
    )


def reconcile_selection(current: str, availability: SlotAvailability) -> str:
    if availability.available and current not in availability.available:
        return availability.available[0]
    return current
