from __future__ import annotations

import calendar
from datetime import date, datetime


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def today_iso() -> str:
    return now_local().date().isoformat()


def day_keys(year: int, month: int) -> list[str]:
    """Two-digit day strings ("01".."31") for every day of the month."""
    last = calendar.monthrange(int(year), int(month))[1]
    return [f"{d:02d}" for d in range(1, last + 1)]


def semester_id_for(day: date) -> str:
    """Academic semester id, e.g. "2024-2025-ganjil" or "2024-2025-genap".

    July..December is the odd semester of the academic year starting that
    year; January..June is the even semester of the year that started before.
    """
    if day.month >= 7:
        return f"{day.year}-{day.year + 1}-ganjil"
    return f"{day.year - 1}-{day.year}-genap"
