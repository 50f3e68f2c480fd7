from __future__ import annotations

from datetime import datetime, timezone

import pytest

from school_attendance.container import build_container
from school_attendance.docstore.memory_store import InMemoryDocumentStore
from school_attendance.roster.model import ClassGroupMeta

FIXED_NOW = datetime(2024, 9, 2, 7, 30, tzinfo=timezone.utc)

TKJ = ClassGroupMeta(grade=10, program="Teknik Komputer dan Jaringan", sub_specialization="TKJ")


def import_row(nisn, name, code="X-TKJ1", *, jk="L", grade="10", program="Teknik Komputer dan Jaringan"):
    return {
        "NISN": nisn,
        "Nama": name,
        "JK": jk,
        "Rombel": code,
        "Tingkat": grade,
        "Program Keahlian": program,
        "Kompetensi Keahlian": "TKJ",
    }


@pytest.fixture()
def store():
    return InMemoryDocumentStore(clock=lambda: FIXED_NOW)


@pytest.fixture()
def container(store):
    return build_container(store=store)
