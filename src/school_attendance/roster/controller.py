from __future__ import annotations

from typing import Optional

from flask import Flask, request

from ..common.http import int_arg, json_body, ok
from ..common.text_utils import clean
from ..common.validators import require_non_empty
from ..container import Container
from .importer import normalize_gender, parse_grade
from .model import ClassGroupMeta, Student

DEFAULT_PAGE_SIZE = 20


def _group_meta(payload: Optional[dict]) -> Optional[ClassGroupMeta]:
    if not payload:
        return None
    return ClassGroupMeta(
        grade=parse_grade(payload.get("tingkat")),
        program=clean(payload.get("program_keahlian")),
        sub_specialization=clean(payload.get("kompetensi_keahlian")) or None,
        period_id=clean(payload.get("period_id")) or None,
    )


def _student(payload: dict, *, nisn: Optional[str] = None) -> Student:
    data = dict(payload)
    data["nisn"] = require_non_empty(clean(data.get("nisn") or nisn), "NISN")
    data["rombel_id"] = require_non_empty(clean(data.get("rombel_id")), "Rombel")
    data["jk"] = normalize_gender(data.get("jk"))
    if data.get("tingkat") is not None:
        data["tingkat"] = parse_grade(data.get("tingkat"))
    return Student.from_doc(data)


def register(app: Flask, container: Container) -> None:
    roster = container.roster_service

    @app.route("/api/students", methods=["GET"], endpoint="api_students")
    def api_students():
        students = roster.filter_students(
            roster.list_students(),
            search=request.args.get("q") or None,
            class_group_id=request.args.get("rombel") or None,
            grade=int_arg("tingkat"),
        )
        page = max(int_arg("page", 1), 1)
        per_page = max(int_arg("per_page", DEFAULT_PAGE_SIZE), 1)
        start = (page - 1) * per_page
        return ok(
            total=len(students),
            page=page,
            total_pages=(len(students) + per_page - 1) // per_page,
            students=[s.to_doc() for s in students[start:start + per_page]],
        )

    @app.route("/api/students", methods=["POST"], endpoint="api_students_create")
    def api_students_create():
        body = json_body()
        student = roster.add_student(_student(body.get("student") or {}), _group_meta(body.get("rombel")))
        return ok(student=student.to_doc()), 201

    @app.route("/api/students/import", methods=["POST"], endpoint="api_students_import")
    def api_students_import():
        body = json_body()
        rows = body.get("rows")
        if not isinstance(rows, list):
            rows = []
        result = roster.import_students(
            [r for r in rows if isinstance(r, dict)],
            period_id=clean(body.get("period_id")) or None,
        )
        return ok(**result.as_dict())

    @app.route("/api/students/<nisn>", methods=["GET"], endpoint="api_student_detail")
    def api_student_detail(nisn: str):
        return ok(student=roster.get_student(nisn).to_doc())

    @app.route("/api/students/<nisn>", methods=["PUT"], endpoint="api_student_update")
    def api_student_update(nisn: str):
        body = json_body()
        old = roster.get_student(nisn)
        changes = body.get("student") or {}
        data = {**old.to_doc(), **changes}
        if clean(changes.get("rombel_id")) not in ("", old.class_group_id):
            # Derived from the target class-group unless sent explicitly.
            for key in ("nama_rombel", "tingkat", "program_keahlian"):
                if key not in changes:
                    data.pop(key, None)
        new = roster.update_student(old, _student(data, nisn=nisn), _group_meta(body.get("rombel")))
        return ok(student=new.to_doc())

    @app.route("/api/students/<nisn>", methods=["DELETE"], endpoint="api_student_delete")
    def api_student_delete(nisn: str):
        student = roster.get_student(nisn)
        roster.delete_student(student, request.args.get("program") or None)
        return ok(nisn=nisn)

    @app.route("/api/class-groups", methods=["GET"], endpoint="api_class_groups")
    def api_class_groups():
        groups = roster.list_class_groups(grade=int_arg("tingkat"))
        return ok(class_groups=[g.to_doc() for g in groups])

    @app.route("/api/class-groups", methods=["POST"], endpoint="api_class_groups_create")
    def api_class_groups_create():
        body = json_body()
        meta = _group_meta(body) or ClassGroupMeta(grade=None, program="")
        group = roster.create_class_group(clean(body.get("kode")), meta)
        return ok(class_group=group.to_doc()), 201

    @app.route("/api/class-groups/<class_group_id>", methods=["GET"], endpoint="api_class_group_detail")
    def api_class_group_detail(class_group_id: str):
        return ok(class_group=roster.get_class_group(class_group_id).to_doc())

    @app.route("/api/class-groups/<class_group_id>/students", methods=["GET"], endpoint="api_class_group_students")
    def api_class_group_students(class_group_id: str):
        students = roster.list_students_in_group(class_group_id)
        return ok(students=[s.to_doc() for s in students])

    @app.route("/api/class-groups/<class_group_id>/rebuild", methods=["POST"], endpoint="api_class_group_rebuild")
    def api_class_group_rebuild(class_group_id: str):
        return ok(students=roster.rebuild_class_group_refs(class_group_id))

    @app.route("/api/programs/rebuild", methods=["POST"], endpoint="api_program_rebuild")
    def api_program_rebuild():
        body = json_body()
        return ok(students=roster.rebuild_program_summary(clean(body.get("program"))))
