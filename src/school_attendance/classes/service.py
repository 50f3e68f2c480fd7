from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

from ..common.text_utils import dash_spaces
from ..common.validators import require_non_empty
from ..core.exceptions import NotFoundError
from ..roster.model import Student
from ..roster.repository import RosterRepository
from .model import ClassSession
from .repository import ClassSessionRepository

logger = logging.getLogger(__name__)


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class ClassSessionService:
    def __init__(
        self,
        sessions: ClassSessionRepository,
        roster: RosterRepository,
        *,
        clock_ms: Optional[Callable[[], int]] = None,
    ):
        self._sessions = sessions
        self._roster = roster
        self._clock_ms = clock_ms or _epoch_millis

    def create_class_session(self, teacher_id: str, subject: str, class_group_id: str) -> ClassSession:
        """Open a subject for a class-group, snapshotting the group's current refs."""
        teacher_id = require_non_empty(teacher_id, "Guru")
        subject = require_non_empty(subject, "Mata pelajaran")
        class_group_id = require_non_empty(class_group_id, "Rombel")

        group = self._roster.get_class_group(class_group_id)
        if not group:
            raise NotFoundError("Rombel tidak ditemukan")

        session = ClassSession(
            id=f"{dash_spaces(subject)}_{class_group_id}_{self._clock_ms()}",
            teacher_id=teacher_id,
            subject=subject,
            class_group_id=class_group_id,
            students=tuple(
                Student(nisn=r.nisn, name=r.name, gender=r.gender, class_group_id=class_group_id, enrolled_on="")
                for r in group.student_refs
            ),
            active=True,
        )
        self._sessions.create(session)
        logger.info("Created class session %s for %s", session.id, teacher_id)
        return session

    def get(self, class_id: str) -> ClassSession:
        session = self._sessions.get(class_id)
        if not session:
            raise NotFoundError("Kelas tidak ditemukan")
        return session

    def list_for_teacher(self, teacher_id: str) -> list[ClassSession]:
        return self._sessions.list_for_teacher(teacher_id)

    def set_active(self, class_id: str, active: bool) -> None:
        self.get(class_id)
        self._sessions.set_active(class_id, active)

    def sync_roster(self, class_id: str, students: Sequence[Student]) -> None:
        """Overwrite the session's roster snapshot. Last write wins."""
        self._sessions.replace_students(class_id, students)
        logger.info("Synced roster of %s (%d students)", class_id, len(students))

    def sync_roster_from_group(self, class_id: str) -> list[Student]:
        session = self.get(class_id)
        students = self._roster.students_in_group(session.class_group_id)
        self.sync_roster(class_id, students)
        return students
