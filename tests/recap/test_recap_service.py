from __future__ import annotations

import io
from datetime import date

import pytest
from openpyxl import load_workbook

from school_attendance.attendance.model import AttendanceRecord
from school_attendance.core.enums import AttendanceStatus, RecapMark
from school_attendance.core.exceptions import NotFoundError, ValidationError
from school_attendance.recap.derivation import derive_mark, form_stats, tally
from school_attendance.recap.export import recap_filename, recap_to_xlsx

from conftest import import_row


@pytest.fixture()
def class_id(container):
    container.roster_service.import_students(
        [import_row("1", "Ani", jk="P"), import_row("2", "Budi"), import_row("3", "Cici", jk="P")]
    )
    class_id = container.class_session_service.create_class_session("guru", "Basis Data", "X-TKJ1").id
    attendance = container.attendance_service
    attendance.record_session_day(class_id, date(2024, 9, 2), {"1": "S"})
    attendance.record_session_day(class_id, date(2024, 9, 3), {})
    attendance.record_session_day(class_id, date(2024, 9, 4), {"2": "A", "3": "I"})
    attendance.record_session_day(class_id, date(2024, 10, 1), {"1": "A"})
    return class_id


def test_derive_mark_cases():
    records = [AttendanceRecord("1", AttendanceStatus.SICK_LONG), AttendanceRecord("2", AttendanceStatus.LATE)]

    assert derive_mark(None, "1") is RecapMark.NO_DATA
    assert derive_mark([], "1") is RecapMark.PRESENT
    assert derive_mark(records, "1") is RecapMark.SICK
    assert derive_mark(records, "2") is RecapMark.PRESENT
    assert derive_mark(records, "3") is RecapMark.PRESENT
    assert tally([RecapMark.NO_DATA, RecapMark.SICK, RecapMark.PRESENT]) == {"S": 1, "I": 0, "A": 0, "H": 1}
    assert form_stats({"1": "H", "2": "izin", "3": "A"}) == {"S": 0, "I": 1, "A": 1, "H": 1}


def test_session_recap_cells_and_tallies(container, class_id):
    report = container.recap_service.session_recap(class_id, 2024, 9)

    assert report.title == "Rekap Absensi: Basis Data (X-TKJ1)"
    assert report.period == "09/2024"
    assert report.days == tuple(f"{d:02d}" for d in range(1, 31))
    assert report.header[:4] == ["No", "NISN", "Nama", "01"]
    assert report.header[-4:] == ["S", "I", "A", "H"]

    ani, budi, cici = report.rows
    assert ani.marks[:5] == ("-", "S", "H", "H", "-")
    assert budi.marks[:5] == ("-", "H", "H", "A", "-")
    assert cici.marks[:5] == ("-", "H", "H", "I", "-")
    assert set(ani.marks[4:]) == {"-"}
    assert ani.counts == {"S": 1, "I": 0, "A": 0, "H": 2}
    assert budi.counts == {"S": 0, "I": 0, "A": 1, "H": 2}
    assert cici.counts == {"S": 0, "I": 1, "A": 0, "H": 2}

    first = report.matrix()[0]
    assert first[:7] == [1, "1", "Ani", "-", "S", "H", "H"]
    assert first[-4:] == [1, 0, 0, 2]


def test_session_recap_errors(container, class_id):
    with pytest.raises(NotFoundError):
        container.recap_service.session_recap("missing", 2024, 9)
    with pytest.raises(ValidationError):
        container.recap_service.session_recap(class_id, 2024, 0)


def test_homeroom_recap_reads_semester_ledger(container, class_id):
    attendance = container.attendance_service
    attendance.record_homeroom_day("X-TKJ1", date(2024, 9, 2), {"2": "sakit"}, "wali")
    attendance.record_homeroom_day("X-TKJ1", date(2024, 9, 5), {"1": "terlambat", "3": "alpha"}, "wali")
    attendance.record_homeroom_day("X-TKJ1", date(2024, 10, 1), {"1": "izin"}, "wali")

    report = container.recap_service.homeroom_recap("X-TKJ1", 2024, 9)

    assert report.title == "Rekap Absensi: 10 TKJ TKJ1"
    assert report.file_stem == "Rekap_X-TKJ1_09-2024"
    counts = {r.nisn: r.counts for r in report.rows}
    assert counts == {
        "1": {"S": 0, "I": 0, "A": 0, "H": 2},
        "2": {"S": 1, "I": 0, "A": 0, "H": 1},
        "3": {"S": 0, "I": 0, "A": 1, "H": 1},
    }
    assert report.rows[2].marks[1] == "H"
    assert report.rows[2].marks[4] == "A"


def test_recap_spreadsheet_layout(container, class_id):
    report = container.recap_service.session_recap(class_id, 2024, 9)

    wb = load_workbook(io.BytesIO(recap_to_xlsx(report)))
    ws = wb["Rekap"]

    assert recap_filename(report) == "Rekap_X-TKJ1_09-2024.xlsx"
    assert ws.cell(row=1, column=1).value == "Rekap Absensi: Basis Data (X-TKJ1)"
    assert ws.cell(row=2, column=1).value == "Periode: 09/2024"
    assert [ws.cell(row=4, column=c).value for c in range(1, 5)] == ["No", "NISN", "Nama", "01"]
    assert [ws.cell(row=5, column=c).value for c in range(1, 6)] == [1, "1", "Ani", "-", "S"]
    assert ws.max_row == 7
