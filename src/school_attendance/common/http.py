from __future__ import annotations

from datetime import date
from typing import Optional

from flask import jsonify, request

from ..core.exceptions import ValidationError
from .datetime_utils import now_local, parse_iso_date

# Set by the authentication layer in front of the app; never interpreted here.
IDENTITY_HEADER = "X-User-Email"


def ok(**payload):
    return jsonify({"success": True, **payload})


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Body JSON tidak valid")
    return data


def parse_day(value: str) -> date:
    try:
        return parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Tanggal tidak valid: {value!r}") from None


def request_identity() -> Optional[str]:
    value = request.headers.get(IDENTITY_HEADER, "").strip()
    return value or None


def int_arg(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Parameter {name} tidak valid") from None


def year_month_args() -> tuple[int, int]:
    today = now_local().date()
    return int_arg("year", today.year), int_arg("month", today.month)
