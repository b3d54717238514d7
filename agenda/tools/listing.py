from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any

from dateutil.relativedelta import SU, relativedelta

from ..schemas import Appointment
from .formatters import normalize_str, parse_date

DEFAULT_PAGE_SIZE = 20


def normalize_appointments(records: Iterable[Any]) -> list[Appointment]:
    return [Appointment.from_record(record) for record in records if isinstance(record, dict)]


def matches_search(appointment: Appointment, term: str) -> bool:
    needle = normalize_str(term)
    return needle in normalize_str(appointment.nome) or needle in normalize_str(appointment.telefone)


def _sort_key(appointment: Appointment) -> tuple[date, str]:
    # unparseable dates sort last
    return parse_date(appointment.data) or date.max, appointment.horario or ""


def filter_appointments(
    appointments: Iterable[Appointment],
    search: str = "",
    start: str | None = None,
    end: str | None = None,
) -> list[Appointment]:
    filtered = list(appointments)
    if search and search.strip():
        filtered = [appointment for appointment in filtered if matches_search(appointment, search)]

    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date or end_date:
        filtered = [
            appointment
            for appointment in filtered
            if _within(parse_date(appointment.data), start_date, end_date)
        ]
    return sorted(filtered, key=_sort_key)


def _within(day: date | None, start: date | None, end: date | None) -> bool:
    if day is None:
        return False
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


def paginate(
    appointments: list[Appointment],
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> tuple[list[Appointment], bool]:
    """Cumulative paging: page N returns everything up to the end of page N."""
    page = max(page, 1)
    visible = appointments[: page * page_size]
    return visible, len(visible) < len(appointments)


def today_range(today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    return today, today


def week_range(today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    start = today + relativedelta(weekday=SU(-1))
    return start, start + relativedelta(days=6)


def month_range(today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    start = today + relativedelta(day=1)
    return start, start + relativedelta(months=1, days=-1)


QUICK_RANGES = {
    "today": today_range,
    "week": week_range,
    "month": month_range,
}
