from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable, Mapping, Optional

from ..common.datetime_utils import today_iso
from ..common.validators import require_non_empty
from ..core.constants import NO_PROGRAM
from ..core.exceptions import NotFoundError, ValidationError
from .importer import ImportRow, parse_row
from .model import (
    ClassGroup,
    ClassGroupMeta,
    ImportResult,
    ProgramSummary,
    Student,
    class_group_display_name,
)
from .repository import RosterRepository

logger = logging.getLogger(__name__)


class RosterService:
    """Keeps the three student aggregates in sync.

    * ``students/<nisn>``: authoritative record
    * ``rombel/<id>.daftar_siswa_ref``: lightweight refs, one per NISN
    * ``program_keahlian/<slug>.students``: full snapshots per program

    Class-group refs are changed with exact-match remove/union transforms;
    program summaries use union on import and read-modify-write on edit.
    The latter is not safe against concurrent edits of the same program;
    :meth:`rebuild_program_summary` repairs drift.
    """

    def __init__(self, roster: RosterRepository, *, today: Optional[Callable[[], str]] = None):
        self._roster = roster
        self._today = today or today_iso

    # --- reads ---

    def list_students(self) -> list[Student]:
        """All students, read from the program summaries (no full scan of students)."""
        students: list[Student] = []
        for summary in self._roster.list_program_summaries():
            students.extend(summary.students)
        return students

    @staticmethod
    def filter_students(
        students: Iterable[Student],
        *,
        search: Optional[str] = None,
        class_group_id: Optional[str] = None,
        grade: Optional[int] = None,
    ) -> list[Student]:
        result = list(students)
        if search:
            needle = search.strip().lower()
            result = [
                s
                for s in result
                if needle in s.name.lower() or needle in s.nisn or needle in s.class_group_id.lower()
            ]
        if class_group_id:
            result = [s for s in result if s.class_group_id == class_group_id]
        if grade is not None:
            result = [s for s in result if s.grade == int(grade)]
        return result

    def get_student(self, nisn: str) -> Student:
        student = self._roster.get_student(nisn)
        if not student:
            raise NotFoundError(f"Siswa {nisn} tidak ditemukan")
        return student

    def list_students_in_group(self, class_group_id: str) -> list[Student]:
        return self._roster.students_in_group(class_group_id)

    def get_class_group(self, class_group_id: str) -> ClassGroup:
        group = self._roster.get_class_group(class_group_id)
        if not group:
            raise NotFoundError(f"Rombel {class_group_id} tidak ditemukan")
        return group

    def list_class_groups(self, *, grade: Optional[int] = None) -> list[ClassGroup]:
        groups = self._roster.list_class_groups()
        if grade is not None:
            groups = [g for g in groups if g.grade == int(grade)]
        return sorted(groups, key=lambda g: g.name)

    def create_class_group(self, code: str, meta: ClassGroupMeta) -> ClassGroup:
        code = require_non_empty(code, "Kode rombel")
        group_id = f"{meta.period_id}-{code}" if meta.period_id else code
        if self._roster.get_class_group(group_id):
            raise ValidationError(f"Rombel {group_id} sudah ada")

        group = ClassGroup.create(code, meta, group_id=group_id)
        batch = self._roster.batch()
        self._roster.put_class_group(batch, group)
        self._roster.commit(batch)
        return group

    # --- bulk import ---

    @staticmethod
    def _group_id(row: ImportRow, period_id: Optional[str]) -> str:
        return f"{period_id}-{row.class_group_code}" if period_id else row.class_group_code

    def import_students(self, rows: Iterable[Mapping[str, object]], *, period_id: Optional[str] = None) -> ImportResult:
        """Upsert students from raw import rows.

        Rows without NISN or class-group code are skipped. When a NISN occurs
        more than once, the last row wins. A student that already exists
        keeps its enrollment date, and its previous ref and program snapshot
        are removed before the new ones are added, so re-importing never
        leaves two entries for one NISN.
        """
        parsed: dict[str, ImportRow] = {}
        skipped = 0
        for raw in rows:
            row = parse_row(raw)
            if row is None:
                skipped += 1
                logger.debug("Skipping import row without NISN/Rombel: %r", raw)
                continue
            parsed.pop(row.nisn, None)
            parsed[row.nisn] = row

        if not parsed:
            return ImportResult(students_written=0, class_groups_touched=0, skipped_rows=skipped)

        existing = self._roster.get_students(parsed)
        stored_groups = self._roster.get_class_groups({self._group_id(row, period_id) for row in parsed.values()})
        groups: dict[str, ClassGroup] = {}
        members: dict[str, list[Student]] = {}
        students: list[Student] = []

        for row in parsed.values():
            group_id = self._group_id(row, period_id)
            group = groups.get(group_id)
            if group is None:
                # Blank template cells keep what the stored class-group already has.
                stored = stored_groups.get(group_id)
                meta = ClassGroupMeta(
                    grade=row.grade if row.grade is not None or stored is None else stored.grade,
                    program=row.program or (stored.program if stored else ""),
                    sub_specialization=row.sub_specialization or (stored.sub_specialization if stored else None),
                    period_id=period_id,
                )
                group = ClassGroup.create(row.class_group_code, meta, group_id=group_id)
                groups[group_id] = group

            previous = existing.get(row.nisn)
            student = Student(
                nisn=row.nisn,
                name=row.name,
                gender=row.gender,
                class_group_id=group_id,
                enrolled_on=previous.enrolled_on if previous and previous.enrolled_on else self._today(),
                class_group_name=group.name,
                program=row.program or group.program or NO_PROGRAM,
                grade=row.grade if row.grade is not None else group.grade,
            )
            students.append(student)
            members.setdefault(group_id, []).append(student)

        changed = [(existing[s.nisn], s) for s in students if s.nisn in existing and existing[s.nisn] != s]
        known_groups = set(groups) | set(
            self._roster.get_class_groups({p.class_group_id for p, _ in changed} - set(groups))
        )
        batch_programs = {ProgramSummary.key_for(s.program) for s in students if s.program}
        known_programs = batch_programs | {
            ProgramSummary.key_for(p.program)
            for p, _ in changed
            if p.program and self._roster.get_program_summary(p.program)
        }

        batch = self._roster.batch()
        for student in students:
            self._roster.put_student(batch, student)

        for group in groups.values():
            self._roster.merge_class_group(batch, group)

        for previous, student in changed:
            if previous.ref != student.ref or previous.class_group_id != student.class_group_id:
                if previous.class_group_id in known_groups:
                    self._roster.remove_refs(batch, previous.class_group_id, [previous.ref])

        for group_id, group_students in members.items():
            self._roster.add_refs(batch, group_id, [s.ref for s in group_students])

        by_program: dict[str, list[Student]] = {}
        for student in students:
            if student.program:
                by_program.setdefault(student.program, []).append(student)
        for program, program_students in by_program.items():
            self._roster.union_program_students(batch, program, program_students)

        for previous, _ in changed:
            if previous.program and ProgramSummary.key_for(previous.program) in known_programs:
                self._roster.remove_program_students(batch, previous.program, [previous])

        chunks = self._roster.commit(batch)
        logger.info(
            "Imported %d students into %d class-groups (%d rows skipped, %d writes, %d chunk(s))",
            len(students),
            len(groups),
            skipped,
            len(batch),
            chunks,
        )
        return ImportResult(students_written=len(students), class_groups_touched=len(groups), skipped_rows=skipped)

    # --- single student ---

    def _complete(self, student: Student, group: Optional[ClassGroup], meta: Optional[ClassGroupMeta]) -> Student:
        """Fill program/grade/display name from the target class-group or its metadata.

        A student with no known program is filed under :data:`NO_PROGRAM`.
        """
        source = group.meta if group else meta
        if source is not None:
            name = student.class_group_name
            if group is not None:
                name = group.name
            elif not name:
                name = class_group_display_name(student.class_group_id, source)
            student = replace(
                student,
                program=student.program or source.program or None,
                grade=student.grade if student.grade is not None else source.grade,
                class_group_name=name,
            )
        if not student.program:
            student = replace(student, program=NO_PROGRAM)
        return student

    def add_student(self, student: Student, meta: Optional[ClassGroupMeta] = None) -> Student:
        require_non_empty(student.nisn, "NISN")
        require_non_empty(student.class_group_id, "Rombel")
        if self._roster.get_student(student.nisn):
            raise ValidationError(f"NISN {student.nisn} sudah terdaftar")

        group = self._roster.get_class_group(student.class_group_id)
        if group is None and meta is None:
            raise ValidationError("Data rombel baru wajib diisi")
        student = self._complete(student, group, meta)
        if not student.enrolled_on:
            student = replace(student, enrolled_on=self._today())

        batch = self._roster.batch()
        self._roster.put_student(batch, student)
        if group is None:
            new_group = ClassGroup.create(student.class_group_id, meta)
            self._roster.put_class_group(batch, replace(new_group, student_refs=(student.ref,)))
        else:
            self._roster.add_refs(batch, group.id, [student.ref])
        self._roster.union_program_students(batch, student.program, [student])
        self._roster.commit(batch)

        logger.info("Added student %s to %s", student.nisn, student.class_group_id)
        return student

    def update_student(self, old: Student, new: Student, meta: Optional[ClassGroupMeta] = None) -> Student:
        """Overwrite a student and re-sync its class-group ref and program snapshot.

        ``meta`` is used only to fill missing program/grade and to create a
        class-group that does not exist yet.
        """
        if old.nisn != new.nisn:
            raise ValidationError("NISN tidak boleh diubah")
        require_non_empty(new.class_group_id, "Rombel")

        moved = old.class_group_id != new.class_group_id
        new_group = self._roster.get_class_group(new.class_group_id) if moved else None
        old_group = self._roster.get_class_group(old.class_group_id) if moved or old.ref != new.ref else None
        if moved and new_group is None and meta is None:
            raise ValidationError("Data rombel baru wajib diisi")
        new = self._complete(new, new_group, meta)

        old_key = ProgramSummary.key_for(old.program or "")
        new_key = ProgramSummary.key_for(new.program or "")
        new_summary = self._roster.get_program_summary(new.program) if new_key else None
        old_summary = self._roster.get_program_summary(old.program) if old_key and old_key != new_key else None

        batch = self._roster.batch()
        self._roster.put_student(batch, new)

        if moved:
            if old_group is not None:
                self._roster.remove_refs(batch, old.class_group_id, [old.ref])
            if new_group is None:
                created = ClassGroup.create(new.class_group_id, meta)
                self._roster.put_class_group(batch, replace(created, student_refs=(new.ref,)))
            else:
                self._roster.add_refs(batch, new_group.id, [new.ref])
            logger.info("Moved student %s from %s to %s", new.nisn, old.class_group_id, new.class_group_id)
        elif old.ref != new.ref and old_group is not None:
            self._roster.remove_refs(batch, old.class_group_id, [old.ref])
            self._roster.add_refs(batch, new.class_group_id, [new.ref])

        if old_summary is not None:
            kept = [s for s in old_summary.students if s.nisn != old.nisn]
            self._roster.replace_program_students(batch, old_summary.name or old.program, kept)
        if new_key:
            current = new_summary.students if new_summary else ()
            kept = [s for s in current if s.nisn != new.nisn]
            self._roster.replace_program_students(batch, new.program, kept + [new])

        self._roster.commit(batch)
        return new

    def delete_student(self, student: Student, program: Optional[str] = None) -> None:
        """Remove a student from all three aggregates.

        ``program`` must be the student's current program; with a wrong one
        the snapshot stays behind in the real program's summary.
        """
        program = program or student.program
        group = self._roster.get_class_group(student.class_group_id)
        summary = self._roster.get_program_summary(program) if program else None

        batch = self._roster.batch()
        self._roster.delete_student(batch, student.nisn)
        if group is not None:
            self._roster.remove_refs(batch, group.id, [student.ref])
        if summary is not None:
            self._roster.remove_program_students(batch, program, [student])
        self._roster.commit(batch)

        logger.info("Deleted student %s from %s", student.nisn, student.class_group_id)

    # --- projection rebuilds ---

    def rebuild_class_group_refs(self, class_group_id: str) -> int:
        """Recompute a class-group's refs from the authoritative students."""
        self.get_class_group(class_group_id)
        students = self._roster.students_in_group(class_group_id)

        batch = self._roster.batch()
        self._roster.replace_refs(batch, class_group_id, [s.ref for s in students])
        self._roster.commit(batch)

        logger.info("Rebuilt refs of %s (%d students)", class_group_id, len(students))
        return len(students)

    def rebuild_program_summary(self, program: str) -> int:
        """Recompute a program summary from the authoritative students."""
        program = require_non_empty(program, "Program keahlian")
        if not ProgramSummary.key_for(program):
            raise ValidationError("Program keahlian tidak valid")
        students = self._roster.students_in_program(program)

        batch = self._roster.batch()
        self._roster.replace_program_students(batch, program, students)
        self._roster.commit(batch)

        logger.info("Rebuilt program summary %s (%d students)", program, len(students))
        return len(students)
