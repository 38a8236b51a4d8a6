"""Date helpers for the two string formats records carry.

Dates travel as ``DD/MM/YYYY`` (typed by users) or ``YYYY-MM-DD`` (produced
by date pickers and generated records), sometimes with an ISO time suffix.
"""

from __future__ import annotations

import calendar
import re
from datetime import date

_BR_DATE = re.compile(r"^\d{2}/\d{2}/\d{4}$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")

MONTH_NAMES_PT = (
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
)


def parse_date(text: str | None) -> date | None:
    """Parse ``DD/MM/YYYY`` or ``YYYY-MM-DD`` into a date.

    Returns None for empty input, other layouts or impossible dates.
    """
    if not text:
        return None
    text = text.strip()
    try:
        if "/" in text:
            parts = text.split("/")
            if len(parts) == 3 and len(parts[2]) == 4:
                return date(int(parts[2]), int(parts[1]), int(parts[0]))
        elif "-" in text:
            parts = text[:10].split("-")
            if len(parts) == 3 and len(parts[0]) == 4:
                return date(int(parts[0]), int(parts[1]), int(parts[2]))
    except ValueError:
        return None
    return None


def format_date(text: str | None) -> str:
    """Render a date string as ``DD/MM/YYYY``.

    ``DD/MM/YYYY`` input is returned unchanged and ``YYYY-MM-DD`` is
    rearranged. Empty input renders as ``-``; anything else is returned as is.
    """
    if not text:
        return "-"
    if _BR_DATE.match(text):
        return text
    if _ISO_DATE.match(text):
        year, month, day = text[:10].split("-")
        return f"{day}/{month}/{year}"
    return text


def to_iso(value: date | str) -> str:
    """Return ``YYYY-MM-DD`` for a date or a parseable date string."""
    if isinstance(value, date):
        return value.isoformat()
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"Unrecognized date: {value!r}")
    return parsed.isoformat()


def day_in_month(year: int, month: int, day: int) -> date:
    """Build a date, clamping the day to the last day of the month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, max(1, min(day, last_day)))


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    return day_in_month(year, month, value.day)


def month_label(value: date) -> str:
    """Portuguese month label, e.g. ``julho de 2024``."""
    return f"{MONTH_NAMES_PT[value.month - 1]} de {value.year}"
