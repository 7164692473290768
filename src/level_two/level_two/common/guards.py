from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import flash, jsonify, redirect, render_template, request, session, url_for

from ..core.enums import Role


@dataclass(frozen=True)
class Capabilities:
    """What the signed-in user may see/do; resolved once at sign-in and kept in the session."""

    user_id: Optional[str]
    name: Optional[str]
    role: Optional[Role]

    @property
    def signed_in(self) -> bool:
        return self.user_id is not None

    @property
    def can_manage_users(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def can_distribute(self) -> bool:
        return self.role == Role.ADMIN


def current_capabilities() -> Capabilities:
    role_s = session.get("role")
    try:
        role = Role(role_s) if role_s else None
    except ValueError:
        role = None
    return Capabilities(user_id=session.get("user_id"), name=session.get("name"), role=role)


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def _forbidden():
    if _wants_json():
        return jsonify({"success": False, "message": "ليس لديك صلاحية"}), 403
    return render_template("403.html"), 403


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            if _wants_json():
                return jsonify({"success": False, "message": "الرجاء تسجيل الدخول"}), 401
            flash("الرجاء تسجيل الدخول للمتابعة", "warning")
            return redirect(url_for("login"))
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            if _wants_json():
                return jsonify({"success": False, "message": "الرجاء تسجيل الدخول"}), 401
            return redirect(url_for("login"))

        if session.get("role") != Role.ADMIN.value:
            return _forbidden()

        return view(*args, **kwargs)

    return wrapper
