from __future__ import annotations

import io

from flask import Flask, request, send_file

from ..common.http import ok, year_month_args
from ..common.text_utils import clean
from ..container import Container
from .export import XLSX_MIMETYPE, recap_filename, recap_to_xlsx
from .service import RecapReport


def _respond(report: RecapReport):
    if (request.args.get("format") or "").lower() == "xlsx":
        return send_file(
            io.BytesIO(recap_to_xlsx(report)),
            download_name=recap_filename(report),
            as_attachment=True,
            mimetype=XLSX_MIMETYPE,
        )
    return ok(**report.as_dict())


def register(app: Flask, container: Container) -> None:
    recaps = container.recap_service

    @app.route("/api/classes/<class_id>/recap", methods=["GET"], endpoint="api_session_recap")
    def api_session_recap(class_id: str):
        year, month = year_month_args()
        return _respond(recaps.session_recap(class_id, year, month))

    @app.route("/api/class-groups/<class_group_id>/recap", methods=["GET"], endpoint="api_homeroom_recap")
    def api_homeroom_recap(class_group_id: str):
        year, month = year_month_args()
        report = recaps.homeroom_recap(
            class_group_id,
            year,
            month,
            semester_id=clean(request.args.get("semester_id")) or None,
        )
        return _respond(report)
