from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Mapping, Optional

from ..classes.repository import ClassSessionRepository
from ..common.datetime_utils import semester_id_for
from ..common.validators import require_month
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError
from ..docstore.fields import SERVER_TIMESTAMP
from ..recap.derivation import form_stats
from ..roster.repository import RosterRepository
from .ledger import AttendanceLedger
from .model import (
    AttendanceForm,
    AttendanceRecord,
    DailyAttendanceEntry,
    MonthlyPartition,
    SemesterPartition,
    parse_status,
)

logger = logging.getLogger(__name__)

PRESENT_FORM_VALUE = "H"


class AttendanceService:
    """Use cases over the two attendance ledgers.

    Per-session ledger stores exceptions only. Homeroom (semester) ledger
    stores an explicit status for every roster member plus who saved last.
    Both are read by exception: a student missing from a saved date is present.
    """

    def __init__(
        self,
        ledger: AttendanceLedger,
        sessions: ClassSessionRepository,
        roster: RosterRepository,
        *,
        semester_for: Optional[Callable[[date], str]] = None,
    ):
        self._ledger = ledger
        self._sessions = sessions
        self._roster = roster
        self._semester_for = semester_for or semester_id_for

    def semester_for(self, day: date) -> str:
        return self._semester_for(day)

    # --- per-session ledger ---

    def record_session_day(
        self,
        class_id: str,
        day: date,
        statuses: Mapping[str, str],
        notes: Optional[Mapping[str, str]] = None,
    ) -> list[AttendanceRecord]:
        if not self._sessions.get(class_id):
            raise NotFoundError("Kelas tidak ditemukan")

        notes = notes or {}
        absences = []
        for nisn, raw in statuses.items():
            status = parse_status(raw)
            if status is AttendanceStatus.PRESENT:
                continue
            absences.append(AttendanceRecord(nisn=str(nisn), status=status, note=notes.get(nisn) or None))

        partition = MonthlyPartition.for_date(class_id, day)
        self._ledger.write_day(partition, partition.date_key(day), [r.to_doc() for r in absences])
        logger.info("Saved attendance %s on %s (%d absent)", class_id, day.isoformat(), len(absences))
        return absences

    def get_session_day(self, class_id: str, day: date) -> Optional[list[AttendanceRecord]]:
        partition = MonthlyPartition.for_date(class_id, day)
        payload = self._ledger.read_day(partition, partition.date_key(day))
        if payload is None:
            return None
        return [AttendanceRecord.from_doc(r) for r in payload]

    def session_form(self, class_id: str, day: date) -> AttendanceForm:
        session = self._sessions.get(class_id)
        if not session:
            raise NotFoundError("Kelas tidak ditemukan")

        statuses = {s.nisn: PRESENT_FORM_VALUE for s in session.students}
        existing = self.get_session_day(class_id, day)
        for record in existing or []:
            statuses[record.nisn] = record.status.value
        return AttendanceForm(statuses=statuses, stats=form_stats(statuses), saved=existing is not None)

    def get_monthly_history(self, class_id: str, year: int, month: int) -> dict[str, list[AttendanceRecord]]:
        year, month = require_month(year, month)
        partition = MonthlyPartition(class_id=class_id, year=f"{year:04d}", month=f"{month:02d}")
        history = self._ledger.read_partition(partition)
        return {day: [AttendanceRecord.from_doc(r) for r in records or []] for day, records in history.items()}

    # --- homeroom (semester) ledger ---

    def record_homeroom_day(
        self,
        class_group_id: str,
        day: date,
        statuses: Mapping[str, str],
        updated_by: str,
        *,
        semester_id: Optional[str] = None,
        notes: Optional[Mapping[str, str]] = None,
    ) -> DailyAttendanceEntry:
        """Save one date for a class-group with an explicit status per student.

        Roster members without a supplied status are stored as present.
        ``updated_by`` is stored as given.
        """
        group = self._roster.get_class_group(class_group_id)
        if not group:
            raise NotFoundError("Rombel tidak ditemukan")

        notes = notes or {}
        records: list[AttendanceRecord] = []
        for ref in group.student_refs:
            status = parse_status(statuses.get(ref.nisn, AttendanceStatus.PRESENT.value))
            records.append(AttendanceRecord(nisn=ref.nisn, status=status, note=notes.get(ref.nisn) or None))
        on_roster = {ref.nisn for ref in group.student_refs}
        for nisn, raw in statuses.items():
            if nisn not in on_roster:
                records.append(AttendanceRecord(nisn=str(nisn), status=parse_status(raw), note=notes.get(nisn) or None))

        partition = SemesterPartition(class_group_id=class_group_id, semester_id=semester_id or self.semester_for(day))
        payload = {
            "records": [r.to_doc() for r in records],
            "updated_by": updated_by,
            "updated_at": SERVER_TIMESTAMP,
        }
        self._ledger.write_day(partition, partition.date_key(day), payload)
        logger.info("Saved homeroom attendance %s on %s by %s", partition.doc_id, day.isoformat(), updated_by)
        return DailyAttendanceEntry(records=tuple(records), updated_by=updated_by)

    def get_homeroom_day(
        self, class_group_id: str, day: date, *, semester_id: Optional[str] = None
    ) -> Optional[DailyAttendanceEntry]:
        partition = SemesterPartition(class_group_id=class_group_id, semester_id=semester_id or self.semester_for(day))
        payload = self._ledger.read_day(partition, partition.date_key(day))
        return DailyAttendanceEntry.from_doc(payload) if payload is not None else None

    def homeroom_form(self, class_group_id: str, day: date, *, semester_id: Optional[str] = None) -> AttendanceForm:
        group = self._roster.get_class_group(class_group_id)
        if not group:
            raise NotFoundError("Rombel tidak ditemukan")

        statuses = {r.nisn: PRESENT_FORM_VALUE for r in group.student_refs}
        entry = self.get_homeroom_day(class_group_id, day, semester_id=semester_id)
        if entry:
            for record in entry.records:
                status = record.status
                statuses[record.nisn] = PRESENT_FORM_VALUE if status is AttendanceStatus.PRESENT else status.value
        return AttendanceForm(
            statuses=statuses,
            stats=form_stats(statuses),
            saved=entry is not None,
            updated_by=entry.updated_by if entry else None,
        )

    def get_semester_history(self, class_group_id: str, semester_id: str) -> dict[str, DailyAttendanceEntry]:
        partition = SemesterPartition(class_group_id=class_group_id, semester_id=semester_id)
        history = self._ledger.read_partition(partition)
        return {key: DailyAttendanceEntry.from_doc(entry or {}) for key, entry in history.items()}
