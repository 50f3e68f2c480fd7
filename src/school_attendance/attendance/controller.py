from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import json_body, ok, parse_day, request_identity
from ..common.text_utils import clean
from ..container import Container
from ..core.exceptions import ValidationError
from .model import AttendanceForm


def _form_doc(form: AttendanceForm) -> dict:
    doc = {"statuses": form.statuses, "stats": form.stats, "saved": form.saved}
    if form.updated_by is not None:
        doc["updated_by"] = form.updated_by
    return doc


def _status_map(body: dict, key: str) -> dict[str, str]:
    value = body.get(key) or {}
    if not isinstance(value, dict):
        raise ValidationError(f"{key} harus berupa objek NISN -> nilai")
    return {str(k): clean(v) for k, v in value.items()}


def register(app: Flask, container: Container) -> None:
    attendance = container.attendance_service

    @app.route("/api/classes/<class_id>/attendance/<day>", methods=["GET"], endpoint="api_session_attendance")
    def api_session_attendance(class_id: str, day: str):
        form = attendance.session_form(class_id, parse_day(day))
        return ok(date=day, **_form_doc(form))

    @app.route("/api/classes/<class_id>/attendance/<day>", methods=["PUT"], endpoint="api_session_attendance_save")
    def api_session_attendance_save(class_id: str, day: str):
        body = json_body()
        absences = attendance.record_session_day(
            class_id,
            parse_day(day),
            _status_map(body, "statuses"),
            notes=_status_map(body, "notes"),
        )
        return ok(date=day, absences=[r.to_doc() for r in absences])

    @app.route("/api/class-groups/<class_group_id>/attendance/<day>", methods=["GET"], endpoint="api_homeroom_attendance")
    def api_homeroom_attendance(class_group_id: str, day: str):
        form = attendance.homeroom_form(
            class_group_id,
            parse_day(day),
            semester_id=clean(request.args.get("semester_id")) or None,
        )
        return ok(date=day, **_form_doc(form))

    @app.route("/api/class-groups/<class_group_id>/attendance/<day>", methods=["PUT"], endpoint="api_homeroom_attendance_save")
    def api_homeroom_attendance_save(class_group_id: str, day: str):
        identity = request_identity()
        if not identity:
            return jsonify({"success": False, "message": "Identitas pengguna tidak ditemukan"}), 401

        body = json_body()
        entry = attendance.record_homeroom_day(
            class_group_id,
            parse_day(day),
            _status_map(body, "statuses"),
            identity,
            semester_id=clean(body.get("semester_id")) or None,
            notes=_status_map(body, "notes"),
        )
        return ok(date=day, updated_by=entry.updated_by, records=[r.to_doc() for r in entry.records])
