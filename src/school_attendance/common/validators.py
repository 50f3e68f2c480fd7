from __future__ import annotations

import re

from ..core.exceptions import ValidationError

_DAY_KEY = re.compile(r"^(0[1-9]|[12][0-9]|3[01])$")
_ISO_DATE_KEY = re.compile(r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12][0-9]|3[01])$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} tidak boleh kosong")
    return str(value).strip()


def require_day_key(value: str) -> str:
    if not isinstance(value, str) or not _DAY_KEY.match(value):
        raise ValidationError(f"Tanggal tidak valid: {value!r}")
    return value


def require_iso_date_key(value: str) -> str:
    if not isinstance(value, str) or not _ISO_DATE_KEY.match(value):
        raise ValidationError(f"Tanggal tidak valid: {value!r}")
    return value


def require_month(year: int, month: int) -> tuple[int, int]:
    try:
        y, m = int(year), int(month)
    except (TypeError, ValueError):
        raise ValidationError("Periode tidak valid") from None
    if not 1 <= m <= 12 or y < 1900:
        raise ValidationError("Periode tidak valid")
    return y, m
