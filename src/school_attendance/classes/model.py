from __future__ import annotations

from dataclasses import dataclass, field

from ..roster.model import Student


@dataclass(frozen=True)
class ClassSession:
    """A teacher + subject + class-group pairing with its own roster snapshot."""

    id: str
    teacher_id: str
    subject: str
    class_group_id: str
    students: tuple[Student, ...] = field(default_factory=tuple)
    active: bool = True

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "guru_id": self.teacher_id,
            "mata_pelajaran": self.subject,
            "rombel_id": self.class_group_id,
            "daftar_siswa": [s.to_doc() for s in self.students],
            "active": self.active,
        }

    @classmethod
    def from_doc(cls, d: dict) -> "ClassSession":
        return cls(
            id=d["id"],
            teacher_id=d.get("guru_id", ""),
            subject=d.get("mata_pelajaran", ""),
            class_group_id=d.get("rombel_id", ""),
            students=tuple(_snapshot(s, d.get("rombel_id", "")) for s in d.get("daftar_siswa") or []),
            active=bool(d.get("active", True)),
        )


def _snapshot(d: dict, class_group_id: str) -> Student:
    # Sessions created from a class-group hold refs only (nisn/nama/jk).
    return Student.from_doc({"rombel_id": class_group_id, **d})
