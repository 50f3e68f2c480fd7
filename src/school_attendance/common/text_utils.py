from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")


def slugify(value: str) -> str:
    """Document key for a program name: "Teknik Elektronika" -> "teknik-elektronika"."""
    return _NON_ALNUM.sub("-", (value or "").strip().lower()).strip("-")


def dash_spaces(value: str) -> str:
    return _WHITESPACE.sub("-", value)


def clean(value) -> str:
    return str(value).strip() if value is not None else ""
