from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, ClassVar, Optional

from ..common.text_utils import clean
from ..common.validators import require_day_key, require_iso_date_key
from ..core.constants import ATTENDANCE_MONTHLY, ATTENDANCE_SEMESTER
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError


def parse_status(value: Any) -> AttendanceStatus:
    """Form value -> status. "H" (any case) means present."""
    raw = clean(value)
    if raw.upper() == "H":
        return AttendanceStatus.PRESENT
    for candidate in (raw, raw.upper(), raw.lower()):
        try:
            return AttendanceStatus(candidate)
        except ValueError:
            continue
    raise ValidationError(f"Status kehadiran tidak dikenal: {value!r}")


@dataclass(frozen=True)
class AttendanceRecord:
    nisn: str
    status: AttendanceStatus
    note: Optional[str] = None

    def to_doc(self) -> dict:
        doc = {"nisn": self.nisn, "status": self.status.value}
        if self.note:
            doc["keterangan"] = self.note
        return doc

    @classmethod
    def from_doc(cls, d: dict) -> "AttendanceRecord":
        return cls(nisn=str(d["nisn"]), status=parse_status(d.get("status")), note=d.get("keterangan"))


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass(frozen=True)
class DailyAttendanceEntry:
    """One date of the semester ledger with its audit stamp (last editor only)."""

    records: tuple[AttendanceRecord, ...] = field(default_factory=tuple)
    updated_by: str = ""
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, d: dict) -> "DailyAttendanceEntry":
        return cls(
            records=tuple(AttendanceRecord.from_doc(r) for r in d.get("records") or []),
            updated_by=d.get("updated_by") or "",
            updated_at=_parse_timestamp(d.get("updated_at")),
        )


@dataclass(frozen=True)
class MonthlyPartition:
    """Per-session ledger: one document per (class session, year, month), keyed by "DD"."""

    collection: ClassVar[str] = ATTENDANCE_MONTHLY

    class_id: str
    year: str
    month: str

    @classmethod
    def for_date(cls, class_id: str, day: date) -> "MonthlyPartition":
        return cls(class_id=class_id, year=f"{day.year:04d}", month=f"{day.month:02d}")

    @property
    def doc_id(self) -> str:
        return f"{self.class_id}_{self.year}_{self.month}"

    def base_fields(self) -> dict:
        return {"class_id": self.class_id, "bulan": self.month, "tahun": self.year}

    @staticmethod
    def date_key(day: date) -> str:
        return f"{day.day:02d}"

    @staticmethod
    def check_date_key(key: str) -> str:
        return require_day_key(key)


@dataclass(frozen=True)
class SemesterPartition:
    """Homeroom ledger: one document per (class-group, semester), keyed by ISO date."""

    collection: ClassVar[str] = ATTENDANCE_SEMESTER

    class_group_id: str
    semester_id: str

    @property
    def doc_id(self) -> str:
        return f"{self.class_group_id}_{self.semester_id}"

    def base_fields(self) -> dict:
        return {"rombel_id": self.class_group_id, "semester_id": self.semester_id}

    @staticmethod
    def date_key(day: date) -> str:
        return day.isoformat()

    @staticmethod
    def check_date_key(key: str) -> str:
        return require_iso_date_key(key)


@dataclass(frozen=True)
class AttendanceForm:
    """Editing state for one date: every roster NISN mapped to a status."""

    statuses: dict[str, str]
    stats: dict[str, int]
    saved: bool
    updated_by: Optional[str] = None
