from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.guards import login_required
from ..core.exceptions import DomainError
from ..container import Container

logger = logging.getLogger(__name__)


def _phones_from_form() -> list[str]:
    # One number per line or per repeated `phones` field.
    values = request.form.getlist("phones")
    out: list[str] = []
    for v in values:
        out.extend(v.splitlines())
    return out


def register(app: Flask, container: Container) -> None:
    @app.route("/students", endpoint="students")
    @login_required
    def students():
        query = request.args.get("q", "")
        try:
            items = container.member_service.list_members(query)
        except DomainError as e:
            flash(str(e), "danger")
            items = []
        return render_template("students.html", students=items, query=query, active_page="students")

    @app.route("/students/add", methods=["POST"], endpoint="add_student")
    @login_required
    def add_student():
        try:
            m = container.member_service.add_member(
                name=request.form.get("name", ""),
                phones=_phones_from_form(),
                notes=request.form.get("notes"),
            )
            flash(f"تم إضافة الطالب: {m.name}", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("add student failed")
            flash("حدث خطأ في النظام أثناء إضافة الطالب", "danger")
        return redirect(url_for("students"))

    @app.route("/students/<member_id>/edit", methods=["POST"], endpoint="edit_student")
    @login_required
    def edit_student(member_id: str):
        try:
            m = container.member_service.update_member(
                member_id=member_id,
                name=request.form.get("name", ""),
                phones=_phones_from_form(),
                notes=request.form.get("notes"),
            )
            flash(f"تم تحديث بيانات الطالب: {m.name}", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("edit student failed")
            flash("حدث خطأ في النظام أثناء تعديل الطالب", "danger")
        return redirect(url_for("students"))

    @app.route("/students/<member_id>/delete", methods=["POST"], endpoint="delete_student")
    @login_required
    def delete_student(member_id: str):
        try:
            container.member_service.delete_member(member_id)
            flash("تم حذف الطالب", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("delete student failed")
            flash("حدث خطأ في النظام أثناء حذف الطالب", "danger")
        return redirect(url_for("students"))

    @app.route("/students/import", methods=["POST"], endpoint="import_students")
    @login_required
    def import_students():
        try:
            created = container.member_service.bulk_import(request.form.get("data", ""))
            flash(f"تم استيراد {len(created)} طالب بنجاح", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("bulk import failed")
            flash("حدث خطأ في النظام أثناء الاستيراد", "danger")
        return redirect(url_for("students"))
