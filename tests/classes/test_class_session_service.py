from __future__ import annotations

import pytest

from school_attendance.classes.repository import ClassSessionRepository
from school_attendance.classes.service import ClassSessionService
from school_attendance.core.constants import CLASS_SESSIONS
from school_attendance.core.exceptions import NotFoundError, ValidationError
from school_attendance.roster.repository import RosterRepository
from school_attendance.roster.service import RosterService

from conftest import import_row


@pytest.fixture()
def roster(store):
    return RosterService(RosterRepository(store), today=lambda: "2024-07-15")


@pytest.fixture()
def sessions(store):
    return ClassSessionService(ClassSessionRepository(store), RosterRepository(store), clock_ms=lambda: 1725260000000)


def test_create_snapshots_class_group_refs(roster, sessions, store):
    roster.import_students([import_row("1", "Ani", jk="P"), import_row("2", "Budi")])

    session = sessions.create_class_session("guru@sekolah.sch.id", "Basis Data", "X-TKJ1")

    assert session.id == "Basis-Data_X-TKJ1_1725260000000"
    doc = store.get(CLASS_SESSIONS, session.id)
    assert doc["guru_id"] == "guru@sekolah.sch.id"
    assert doc["active"] is True
    assert [s["nisn"] for s in doc["daftar_siswa"]] == ["1", "2"]
    assert sessions.get(session.id).students[0].class_group_id == "X-TKJ1"


def test_create_requires_existing_class_group(sessions):
    with pytest.raises(NotFoundError):
        sessions.create_class_session("guru", "Basis Data", "NOPE")
    with pytest.raises(ValidationError):
        sessions.create_class_session("guru", " ", "X-TKJ1")


def test_roster_snapshot_is_not_live(roster, sessions):
    roster.import_students([import_row("1", "Ani")])
    session = sessions.create_class_session("guru", "Basis Data", "X-TKJ1")

    roster.import_students([import_row("2", "Budi")])
    assert [s.nisn for s in sessions.get(session.id).students] == ["1"]

    synced = sessions.sync_roster_from_group(session.id)

    assert [s.nisn for s in synced] == ["1", "2"]
    assert [s.nisn for s in sessions.get(session.id).students] == ["1", "2"]


def test_list_for_teacher_and_deactivate(roster, sessions):
    roster.import_students([import_row("1", "Ani")])
    first = sessions.create_class_session("guru-a", "Jaringan Dasar", "X-TKJ1")
    sessions.create_class_session("guru-b", "Basis Data", "X-TKJ1")

    sessions.set_active(first.id, False)

    listed = sessions.list_for_teacher("guru-a")
    assert [c.id for c in listed] == [first.id]
    assert listed[0].active is False
    with pytest.raises(NotFoundError):
        sessions.set_active("missing", True)
