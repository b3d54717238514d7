from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime, timedelta

DISPLAY_DATE_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}$")


def normalize_str(text: str) -> str:
    """Lowercase, strip accents and punctuation so searches ignore them."""
    decomposed = unicodedata.normalize("NFD", (text or "").lower())
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"[^\w\s]", "", without_marks)


def parse_date(text: str | None) -> date | None:
    """Parse ``DD/MM/YYYY`` or ``YYYY-MM-DD``.

    Day and month are only range-checked (1-31, 1-12); a day past the end of
    its month rolls over into the next one, so ``31/02/2025`` is 3 March.
    """
    if not text or not isinstance(text, str):
        return None
    parts = list(reversed(text.split("/"))) if "/" in text else text.split("-")
    if len(parts) != 3:
        return None
    try:
        year, month, day = (int(part) for part in parts)
    except ValueError:
        return None
    if not year or not month or not day:
        return None
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    try:
        return date(year, month, 1) + timedelta(days=day - 1)
    except (ValueError, OverflowError):
        return None


def to_iso_date(text: str | None) -> str | None:
    parsed = parse_date(text)
    return parsed.isoformat() if parsed else None


def date_key(text: str | None) -> str | None:
    """``YYYY-MM-DD`` built from the components as typed, without rollover.

    ``31/02/2025`` gives ``2025-02-31``; this is what the API stores and what
    bookings are compared on.
    """
    if parse_date(text) is None:
        return None
    if "/" in text:
        day, month, year = text.split("/")
    else:
        year, month, day = text.split("-")
    return f"{year.strip()}-{month.strip().zfill(2)}-{day.strip().zfill(2)}"


def to_display_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def format_date(value: date | str) -> str:
    if isinstance(value, str):
        parsed = parse_date(value)
        if parsed is None:
            return value
        value = parsed
    return to_display_date(value)


def only_digits(text: str | None) -> str:
    return re.sub(r"\D", "", text or "")


def format_phone(phone: str) -> str:
    digits = only_digits(phone)
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return phone


def is_date_in_past(text: str, today: date | None = None) -> bool:
    parsed = parse_date(text)
    if parsed is None:
        return False
    return parsed < (today or date.today())


def is_time_in_past(text: str, time_str: str, now: datetime | None = None) -> bool:
    """True when ``text`` is today and ``time_str`` (HH:MM) has already passed."""
    parsed = parse_date(text)
    if parsed is None:
        return False
    now = now or datetime.now()
    if parsed != now.date():
        return False
    try:
        pieces = (time_str or "").split(":")
        hour = int(pieces[0])
        minute = int(pieces[1]) if len(pieces) > 1 and pieces[1] else 0
        slot_start = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    except ValueError:
        return False
    return slot_start < now
