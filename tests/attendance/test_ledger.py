from __future__ import annotations

import threading
from datetime import date

import pytest

from school_attendance.attendance.ledger import AttendanceLedger
from school_attendance.attendance.model import MonthlyPartition, SemesterPartition
from school_attendance.core.constants import ATTENDANCE_MONTHLY, ATTENDANCE_SEMESTER
from school_attendance.core.exceptions import ValidationError
from school_attendance.docstore.memory_store import InMemoryDocumentStore

SEPT = MonthlyPartition(class_id="Basis-Data_X-TKJ1_1", year="2024", month="09")


@pytest.fixture()
def ledger(store):
    return AttendanceLedger(store)


def test_first_write_creates_partition_with_base_fields(ledger, store):
    ledger.write_day(SEPT, "02", [{"nisn": "1", "status": "S"}])

    assert store.get(ATTENDANCE_MONTHLY, "Basis-Data_X-TKJ1_1_2024_09") == {
        "class_id": "Basis-Data_X-TKJ1_1",
        "bulan": "09",
        "tahun": "2024",
        "history": {"02": [{"nisn": "1", "status": "S"}]},
    }


def test_days_commute():
    a, b = InMemoryDocumentStore(), InMemoryDocumentStore()
    day_a = [{"nisn": "1", "status": "S"}]
    day_b = [{"nisn": "2", "status": "A"}]

    AttendanceLedger(a).write_day(SEPT, "02", day_a)
    AttendanceLedger(a).write_day(SEPT, "03", day_b)
    AttendanceLedger(b).write_day(SEPT, "03", day_b)
    AttendanceLedger(b).write_day(SEPT, "02", day_a)

    assert a.get(ATTENDANCE_MONTHLY, SEPT.doc_id) == b.get(ATTENDANCE_MONTHLY, SEPT.doc_id)


def test_rewriting_a_day_replaces_only_that_day(ledger):
    ledger.write_day(SEPT, "02", [{"nisn": "1", "status": "S"}])
    ledger.write_day(SEPT, "03", [{"nisn": "2", "status": "I"}])

    ledger.write_day(SEPT, "02", [])

    assert ledger.read_partition(SEPT) == {"02": [], "03": [{"nisn": "2", "status": "I"}]}


def test_concurrent_writers_on_different_days_keep_every_day(ledger):
    days = [f"{d:02d}" for d in range(1, 31)]
    start = threading.Barrier(len(days))

    def write(day):
        start.wait()
        ledger.write_day(SEPT, day, [{"nisn": day, "status": "A"}])

    threads = [threading.Thread(target=write, args=(d,)) for d in days]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    history = ledger.read_partition(SEPT)
    assert sorted(history) == days
    assert all(history[d] == [{"nisn": d, "status": "A"}] for d in days)


def test_unwritten_day_differs_from_empty_day(ledger):
    assert ledger.read_day(SEPT, "02") is None
    assert ledger.read_partition(SEPT) == {}

    ledger.write_day(SEPT, "02", [])

    assert ledger.read_day(SEPT, "02") == []
    assert ledger.read_day(SEPT, "03") is None


def test_date_keys_are_validated(ledger):
    with pytest.raises(ValidationError):
        ledger.write_day(SEPT, "2", [])
    with pytest.raises(ValidationError):
        ledger.write_day(SEPT, "32", [])
    with pytest.raises(ValidationError):
        ledger.write_day(SemesterPartition("X-TKJ1", "2024-2025-ganjil"), "02", {})


def test_semester_partition_keys(ledger, store):
    partition = SemesterPartition(class_group_id="X-TKJ1", semester_id="2024-2025-ganjil")

    ledger.write_day(partition, partition.date_key(date(2024, 9, 2)), {"records": []})

    assert store.get(ATTENDANCE_SEMESTER, "X-TKJ1_2024-2025-ganjil") == {
        "rombel_id": "X-TKJ1",
        "semester_id": "2024-2025-ganjil",
        "history": {"2024-09-02": {"records": []}},
    }
