"""Coercion of raw import rows (all string fields) into typed values.

Expected keys follow the import template:
``NISN, Nama, JK, Rombel, Tingkat, Program Keahlian, Kompetensi Keahlian``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from ..common.text_utils import clean
from ..core.constants import VALID_GRADES
from ..core.enums import Gender


@dataclass(frozen=True)
class ImportRow:
    nisn: str
    name: str
    gender: str
    class_group_code: str
    grade: Optional[int]
    program: str
    sub_specialization: Optional[str]


def normalize_gender(value) -> str:
    raw = clean(value).upper()
    if raw in {"L", "LAKI-LAKI", "LAKI LAKI", "M"}:
        return Gender.MALE.value
    if raw in {"P", "PEREMPUAN", "F", "W"}:
        return Gender.FEMALE.value
    return raw


def parse_grade(value) -> Optional[int]:
    raw = clean(value)
    try:
        grade = int(raw)
    except ValueError:
        return None
    return grade if grade in VALID_GRADES else None


def parse_row(row: Mapping[str, object]) -> Optional[ImportRow]:
    """None for rows missing NISN or class-group code."""
    nisn = clean(row.get("NISN"))
    code = clean(row.get("Rombel"))
    if not nisn or not code:
        return None
    return ImportRow(
        nisn=nisn,
        name=clean(row.get("Nama")),
        gender=normalize_gender(row.get("JK")),
        class_group_code=code,
        grade=parse_grade(row.get("Tingkat")),
        program=clean(row.get("Program Keahlian")),
        sub_specialization=clean(row.get("Kompetensi Keahlian")) or None,
    )
