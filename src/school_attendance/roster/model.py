from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from ..common.text_utils import slugify


@dataclass(frozen=True)
class StudentRef:
    """Lightweight reference embedded in a class-group (`daftar_siswa_ref`)."""

    nisn: str
    name: str
    gender: str

    def to_doc(self) -> dict:
        return {"nisn": self.nisn, "nama": self.name, "jk": self.gender}

    @classmethod
    def from_doc(cls, d: dict) -> "StudentRef":
        return cls(nisn=str(d["nisn"]), name=d.get("nama", ""), gender=d.get("jk", ""))


@dataclass(frozen=True)
class Student:
    """Authoritative student record. NISN is the primary key and never changes."""

    nisn: str
    name: str
    gender: str
    class_group_id: str
    enrolled_on: str
    class_group_name: Optional[str] = None
    program: Optional[str] = None
    grade: Optional[int] = None

    @property
    def ref(self) -> StudentRef:
        return StudentRef(nisn=self.nisn, name=self.name, gender=self.gender)

    def to_doc(self) -> dict:
        doc: dict[str, Any] = {
            "nisn": self.nisn,
            "nama": self.name,
            "jk": self.gender,
            "rombel_id": self.class_group_id,
            "tanggal_masuk": self.enrolled_on,
        }
        if self.class_group_name is not None:
            doc["nama_rombel"] = self.class_group_name
        if self.program is not None:
            doc["program_keahlian"] = self.program
        if self.grade is not None:
            doc["tingkat"] = self.grade
        return doc

    @classmethod
    def from_doc(cls, d: dict) -> "Student":
        grade = d.get("tingkat")
        return cls(
            nisn=str(d["nisn"]),
            name=d.get("nama", ""),
            gender=d.get("jk", ""),
            class_group_id=d.get("rombel_id", ""),
            enrolled_on=d.get("tanggal_masuk", ""),
            class_group_name=d.get("nama_rombel"),
            program=d.get("program_keahlian"),
            grade=int(grade) if grade is not None else None,
        )


@dataclass(frozen=True)
class ClassGroupMeta:
    """What is needed to create a class-group that does not exist yet."""

    grade: Optional[int]
    program: str
    sub_specialization: Optional[str] = None
    period_id: Optional[str] = None


def class_group_display_name(code: str, meta: ClassGroupMeta) -> str:
    """"10 Teknik Elektronika TE2" for code "X-TE2"."""
    label = code.split("-")[-1]
    grade = "" if meta.grade is None else str(meta.grade)
    return f"{grade} {meta.sub_specialization or meta.program} {label}".strip()


@dataclass(frozen=True)
class ClassGroup:
    """Rombel: a homeroom cohort with an embedded list of student references."""

    id: str
    name: str
    grade: Optional[int]
    program: str
    sub_specialization: Optional[str] = None
    period_id: Optional[str] = None
    student_refs: tuple[StudentRef, ...] = field(default_factory=tuple)

    @property
    def meta(self) -> ClassGroupMeta:
        return ClassGroupMeta(
            grade=self.grade,
            program=self.program,
            sub_specialization=self.sub_specialization,
            period_id=self.period_id,
        )

    def metadata_doc(self) -> dict:
        doc: dict[str, Any] = {
            "id": self.id,
            "nama_rombel": self.name,
            "tingkat": self.grade,
            "program_keahlian": self.program,
            "kompetensi_keahlian": self.sub_specialization,
        }
        if self.period_id is not None:
            doc["period_id"] = self.period_id
        return doc

    def to_doc(self) -> dict:
        doc = self.metadata_doc()
        doc["daftar_siswa_ref"] = [r.to_doc() for r in self.student_refs]
        return doc

    @classmethod
    def from_doc(cls, d: dict, *, doc_id: Optional[str] = None) -> "ClassGroup":
        gid = d.get("id") or doc_id or ""
        grade = d.get("tingkat")
        return cls(
            id=gid,
            name=d.get("nama_rombel") or gid,
            grade=int(grade) if grade is not None else None,
            program=d.get("program_keahlian") or "",
            sub_specialization=d.get("kompetensi_keahlian"),
            period_id=d.get("period_id"),
            student_refs=tuple(StudentRef.from_doc(r) for r in d.get("daftar_siswa_ref") or []),
        )

    @classmethod
    def create(cls, code: str, meta: ClassGroupMeta, *, group_id: Optional[str] = None) -> "ClassGroup":
        return cls(
            id=group_id or code,
            name=class_group_display_name(code, meta),
            grade=meta.grade,
            program=meta.program,
            sub_specialization=meta.sub_specialization,
            period_id=meta.period_id,
        )


@dataclass(frozen=True)
class ProgramSummary:
    """Per-program aggregate holding full student snapshots for fast listing."""

    id: str
    name: str
    students: tuple[Student, ...] = field(default_factory=tuple)

    @classmethod
    def key_for(cls, program: str) -> str:
        return slugify(program)

    @classmethod
    def from_doc(cls, d: dict, *, doc_id: Optional[str] = None) -> "ProgramSummary":
        return cls(
            id=d.get("id") or doc_id or "",
            name=d.get("nama", ""),
            students=tuple(Student.from_doc(s) for s in d.get("students") or []),
        )


@dataclass(frozen=True)
class ImportResult:
    students_written: int
    class_groups_touched: int
    skipped_rows: int = 0

    def as_dict(self) -> dict:
        return asdict(self)
