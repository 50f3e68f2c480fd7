from __future__ import annotations

from flask import Flask, request

from ..common.http import json_body, ok, request_identity
from ..common.text_utils import clean
from ..container import Container


def register(app: Flask, container: Container) -> None:
    sessions = container.class_session_service

    @app.route("/api/classes", methods=["GET"], endpoint="api_classes")
    def api_classes():
        teacher_id = clean(request.args.get("guru_id")) or request_identity() or ""
        return ok(classes=[c.to_doc() for c in sessions.list_for_teacher(teacher_id)])

    @app.route("/api/classes", methods=["POST"], endpoint="api_classes_create")
    def api_classes_create():
        body = json_body()
        session = sessions.create_class_session(
            clean(body.get("guru_id")) or request_identity() or "",
            clean(body.get("mata_pelajaran")),
            clean(body.get("rombel_id")),
        )
        return ok(class_session=session.to_doc()), 201

    @app.route("/api/classes/<class_id>", methods=["GET"], endpoint="api_class_detail")
    def api_class_detail(class_id: str):
        return ok(class_session=sessions.get(class_id).to_doc())

    @app.route("/api/classes/<class_id>/sync", methods=["POST"], endpoint="api_class_sync")
    def api_class_sync(class_id: str):
        students = sessions.sync_roster_from_group(class_id)
        return ok(students=len(students))

    @app.route("/api/classes/<class_id>/active", methods=["POST"], endpoint="api_class_active")
    def api_class_active(class_id: str):
        body = json_body()
        active = bool(body.get("active", True))
        sessions.set_active(class_id, active)
        return ok(id=class_id, active=active)
