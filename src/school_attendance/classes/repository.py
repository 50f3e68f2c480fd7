from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import CLASS_SESSIONS
from ..docstore.store import DocumentStore
from ..roster.model import Student
from .model import ClassSession


class ClassSessionRepository:
    def __init__(self, store: DocumentStore):
        self._store = store

    def get(self, class_id: str) -> Optional[ClassSession]:
        doc = self._store.get(CLASS_SESSIONS, class_id)
        return ClassSession.from_doc(doc) if doc else None

    def list_for_teacher(self, teacher_id: str) -> list[ClassSession]:
        docs = self._store.query(CLASS_SESSIONS, where=[("guru_id", teacher_id)], order_by="mata_pelajaran")
        return [ClassSession.from_doc(d.data) for d in docs]

    def create(self, session: ClassSession) -> None:
        self._store.set(CLASS_SESSIONS, session.id, session.to_doc())

    def replace_students(self, class_id: str, students: Sequence[Student]) -> None:
        self._store.update(CLASS_SESSIONS, class_id, {"daftar_siswa": [s.to_doc() for s in students]})

    def set_active(self, class_id: str, active: bool) -> None:
        self._store.update(CLASS_SESSIONS, class_id, {"active": bool(active)})
