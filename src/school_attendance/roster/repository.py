from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..core.constants import CLASS_GROUPS, PROGRAM_SUMMARIES, STUDENTS
from ..docstore.fields import ArrayRemove, ArrayUnion
from ..docstore.store import DocumentStore, WriteBatch
from .model import ClassGroup, ProgramSummary, Student, StudentRef


class RosterRepository:
    """Reads and batched writes for the three student aggregates.

    Writes never commit on their own: callers collect them in a
    :class:`WriteBatch` so one roster change lands atomically.
    """

    def __init__(self, store: DocumentStore):
        self._store = store

    def batch(self) -> WriteBatch:
        return self._store.batch()

    def commit(self, batch: WriteBatch) -> int:
        """Commit ``batch`` in order, split at the store's batch limit.

        Each chunk is atomic on its own. Returns the number of chunks.
        """
        ops = batch.ops
        limit = self._store.max_batch_writes or len(ops) or 1
        chunks = 0
        for start in range(0, len(ops), limit):
            self._store.commit(ops[start:start + limit])
            chunks += 1
        return chunks

    # --- students ---

    def get_student(self, nisn: str) -> Optional[Student]:
        doc = self._store.get(STUDENTS, nisn)
        return Student.from_doc(doc) if doc else None

    def get_students(self, nisns: Iterable[str]) -> dict[str, Student]:
        docs = self._store.get_many(STUDENTS, nisns)
        return {nisn: Student.from_doc(d) for nisn, d in docs.items()}

    def students_in_group(self, class_group_id: str) -> list[Student]:
        docs = self._store.query(STUDENTS, where=[("rombel_id", class_group_id)], order_by="nama")
        return [Student.from_doc(d.data) for d in docs]

    def students_in_program(self, program: str) -> list[Student]:
        docs = self._store.query(STUDENTS, where=[("program_keahlian", program)], order_by="nama")
        return [Student.from_doc(d.data) for d in docs]

    def put_student(self, batch: WriteBatch, student: Student) -> None:
        batch.set(STUDENTS, student.nisn, student.to_doc())

    def delete_student(self, batch: WriteBatch, nisn: str) -> None:
        batch.delete(STUDENTS, nisn)

    # --- class-groups ---

    def get_class_group(self, class_group_id: str) -> Optional[ClassGroup]:
        doc = self._store.get(CLASS_GROUPS, class_group_id)
        return ClassGroup.from_doc(doc, doc_id=class_group_id) if doc else None

    def get_class_groups(self, ids: Iterable[str]) -> dict[str, ClassGroup]:
        docs = self._store.get_many(CLASS_GROUPS, ids)
        return {gid: ClassGroup.from_doc(d, doc_id=gid) for gid, d in docs.items()}

    def list_class_groups(self) -> list[ClassGroup]:
        return [ClassGroup.from_doc(d.data, doc_id=d.id) for d in self._store.scan(CLASS_GROUPS)]

    def put_class_group(self, batch: WriteBatch, group: ClassGroup) -> None:
        batch.set(CLASS_GROUPS, group.id, group.to_doc())

    def merge_class_group(self, batch: WriteBatch, group: ClassGroup) -> None:
        """Upsert metadata only; an existing reference list is left alone."""
        batch.set(CLASS_GROUPS, group.id, group.metadata_doc(), merge=True)

    def add_refs(self, batch: WriteBatch, class_group_id: str, refs: Sequence[StudentRef]) -> None:
        if refs:
            batch.update(CLASS_GROUPS, class_group_id, {"daftar_siswa_ref": ArrayUnion(*[r.to_doc() for r in refs])})

    def remove_refs(self, batch: WriteBatch, class_group_id: str, refs: Sequence[StudentRef]) -> None:
        if refs:
            batch.update(CLASS_GROUPS, class_group_id, {"daftar_siswa_ref": ArrayRemove(*[r.to_doc() for r in refs])})

    def replace_refs(self, batch: WriteBatch, class_group_id: str, refs: Sequence[StudentRef]) -> None:
        batch.update(CLASS_GROUPS, class_group_id, {"daftar_siswa_ref": [r.to_doc() for r in refs]})

    # --- program summaries ---

    def get_program_summary(self, program: str) -> Optional[ProgramSummary]:
        key = ProgramSummary.key_for(program)
        if not key:
            return None
        doc = self._store.get(PROGRAM_SUMMARIES, key)
        return ProgramSummary.from_doc(doc, doc_id=key) if doc else None

    def list_program_summaries(self) -> list[ProgramSummary]:
        return [ProgramSummary.from_doc(d.data, doc_id=d.id) for d in self._store.scan(PROGRAM_SUMMARIES)]

    def union_program_students(self, batch: WriteBatch, program: str, students: Sequence[Student]) -> None:
        key = ProgramSummary.key_for(program)
        if key and students:
            batch.set(
                PROGRAM_SUMMARIES,
                key,
                {"id": key, "nama": program, "students": ArrayUnion(*[s.to_doc() for s in students])},
                merge=True,
            )

    def remove_program_students(self, batch: WriteBatch, program: str, students: Sequence[Student]) -> None:
        key = ProgramSummary.key_for(program)
        if key and students:
            batch.update(PROGRAM_SUMMARIES, key, {"students": ArrayRemove(*[s.to_doc() for s in students])})

    def replace_program_students(self, batch: WriteBatch, program: str, students: Sequence[Student]) -> None:
        key = ProgramSummary.key_for(program)
        if key:
            batch.set(
                PROGRAM_SUMMARIES,
                key,
                {"id": key, "nama": program, "students": [s.to_doc() for s in students]},
                merge=True,
            )
