from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.service import AttendanceService
from ..classes.repository import ClassSessionRepository
from ..common.datetime_utils import day_keys
from ..common.validators import require_month
from ..core.exceptions import NotFoundError
from ..roster.repository import RosterRepository
from .derivation import TALLY_MARKS, derive_mark, tally


@dataclass(frozen=True)
class RecapRow:
    number: int
    nisn: str
    name: str
    marks: tuple[str, ...]
    counts: dict[str, int]


@dataclass(frozen=True)
class RecapReport:
    title: str
    period: str
    days: tuple[str, ...]
    rows: tuple[RecapRow, ...]
    file_stem: str

    @property
    def header(self) -> list[str]:
        return ["No", "NISN", "Nama", *self.days, *(m.value for m in TALLY_MARKS)]

    def matrix(self) -> list[list]:
        return [
            [r.number, r.nisn, r.name, *r.marks, *(r.counts[m.value] for m in TALLY_MARKS)]
            for r in self.rows
        ]

    def as_dict(self) -> dict:
        return {
            "title": self.title,
            "period": self.period,
            "header": self.header,
            "rows": self.matrix(),
        }


def build_rows(
    students: Sequence[tuple[str, str]],
    days: Sequence[str],
    records_for_day: Callable[[str], Optional[Sequence[AttendanceRecord]]],
) -> tuple[RecapRow, ...]:
    """Fold the ledger into one row per (nisn, name) in roster order."""
    by_day = {d: records_for_day(d) for d in days}
    rows = []
    for number, (nisn, name) in enumerate(students, start=1):
        marks = [derive_mark(by_day[d], nisn) for d in days]
        rows.append(
            RecapRow(
                number=number,
                nisn=nisn,
                name=name,
                marks=tuple(m.value for m in marks),
                counts=tally(marks),
            )
        )
    return tuple(rows)


class RecapService:
    """Monthly recap matrices. No state of its own: ledger + roster only."""

    def __init__(self, attendance: AttendanceService, sessions: ClassSessionRepository, roster: RosterRepository):
        self._attendance = attendance
        self._sessions = sessions
        self._roster = roster

    def session_recap(self, class_id: str, year: int, month: int) -> RecapReport:
        year, month = require_month(year, month)
        session = self._sessions.get(class_id)
        if not session:
            raise NotFoundError("Kelas tidak ditemukan")

        history = self._attendance.get_monthly_history(class_id, year, month)
        days = day_keys(year, month)
        rows = build_rows([(s.nisn, s.name) for s in session.students], days, history.get)
        return RecapReport(
            title=f"Rekap Absensi: {session.subject} ({session.class_group_id})",
            period=f"{month:02d}/{year:04d}",
            days=tuple(days),
            rows=rows,
            file_stem=f"Rekap_{session.class_group_id}_{month:02d}-{year:04d}",
        )

    def homeroom_recap(
        self, class_group_id: str, year: int, month: int, *, semester_id: Optional[str] = None
    ) -> RecapReport:
        year, month = require_month(year, month)
        group = self._roster.get_class_group(class_group_id)
        if not group:
            raise NotFoundError("Rombel tidak ditemukan")

        semester_id = semester_id or self._attendance.semester_for(date(year, month, 1))
        history = self._attendance.get_semester_history(class_group_id, semester_id)

        def records_for_day(day: str):
            entry = history.get(f"{year:04d}-{month:02d}-{day}")
            return entry.records if entry is not None else None

        days = day_keys(year, month)
        rows = build_rows([(r.nisn, r.name) for r in group.student_refs], days, records_for_day)
        return RecapReport(
            title=f"Rekap Absensi: {group.name}",
            period=f"{month:02d}/{year:04d}",
            days=tuple(days),
            rows=rows,
            file_stem=f"Rekap_{group.id}_{month:02d}-{year:04d}",
        )
