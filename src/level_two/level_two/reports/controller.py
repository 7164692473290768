from __future__ import annotations

import logging

from flask import Flask, flash, render_template, request

from ..common.guards import login_required
from ..core.exceptions import DomainError, ValidationError
from ..container import Container
from .export import COLUMNS, REPORT_TITLE, export_filename, export_rows, to_csv_bytes, to_xlsx_bytes
from .service import ReportRange

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def register(app: Flask, container: Container) -> None:
    def _range() -> ReportRange:
        return container.report_service.resolve_range(
            start=request.args.get("start"),
            end=request.args.get("end"),
            member_id=request.args.get("member_id"),
        )

    def _download(body: bytes, *, mimetype: str, filename: str):
        return app.response_class(
            body,
            mimetype=mimetype,
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/reports", endpoint="reports")
    @login_required
    def reports():
        try:
            rng = _range()
        except ValidationError as e:
            flash(str(e), "warning")
            rng = container.report_service.resolve_range(start=None, end=None)

        try:
            data = container.report_service.build(rng)
        except DomainError as e:
            logger.exception("report load failed")
            flash(str(e), "danger")
            data = None

        try:
            students = container.member_service.list_members()
        except DomainError:
            logger.exception("students load failed")
            students = []

        return render_template(
            "reports.html",
            rng=rng,
            data=data,
            students=students,
            active_page="reports",
        )

    @app.route("/reports/export.<fmt>", endpoint="reports_export")
    @login_required
    def reports_export(fmt: str):
        try:
            rng = _range()
            data = container.report_service.build(rng)
        except DomainError as e:
            return {"success": False, "message": str(e)}, 400

        if fmt == "csv":
            return _download(
                to_csv_bytes(data.rows),
                mimetype="text/csv; charset=utf-8",
                filename=export_filename(rng.start, rng.end, "csv"),
            )
        if fmt == "xlsx":
            return _download(
                to_xlsx_bytes(data.rows),
                mimetype=XLSX_MIMETYPE,
                filename=export_filename(rng.start, rng.end, "xlsx"),
            )
        if fmt == "html":
            return render_template(
                "report_print.html",
                title=REPORT_TITLE,
                columns=COLUMNS,
                rows=export_rows(data.rows),
            )
        return {"success": False, "message": "صيغة التصدير غير مدعومة"}, 404
