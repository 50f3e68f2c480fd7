from __future__ import annotations

from enum import Enum


class Gender(str, Enum):
    """Jenis kelamin as stored in student documents."""

    MALE = "L"
    FEMALE = "P"


class AttendanceStatus(str, Enum):
    """Statuses accepted by both attendance ledgers.

    Short codes come from the per-session form, long forms from the homeroom form.
    """

    SICK = "S"
    PERMITTED = "I"
    UNEXCUSED = "A"
    PRESENT = "hadir"
    SICK_LONG = "sakit"
    PERMITTED_LONG = "izin"
    UNEXCUSED_LONG = "alpha"
    LATE = "terlambat"


class RecapMark(str, Enum):
    """One cell of the recap matrix."""

    SICK = "S"
    PERMITTED = "I"
    UNEXCUSED = "A"
    PRESENT = "H"
    NO_DATA = "-"
