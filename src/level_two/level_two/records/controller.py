from __future__ import annotations

import logging
import uuid
from typing import Optional

from flask import Flask, jsonify, render_template, request, session

from ..common.datetime_utils import iso, parse_iso_date, today_iso
from ..common.guards import current_capabilities, login_required
from ..core.constants import DEFAULT_REALTIME_POLL_SECONDS, DEFAULT_SEARCH_DEBOUNCE_MS
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfirmationRequired,
    DateMismatchError,
    ValidationError,
    WriteError,
)
from ..container import Container
from ..realtime.events import Notice
from .model import RecordKind
from .workspace import TrackingWorkspace

logger = logging.getLogger(__name__)

TAB_HEADER = "X-Tab-Id"

_STATUS_CODES = {
    ValidationError: 400,
    AuthenticationError: 401,
    AuthorizationError: 403,
    ConfirmationRequired: 409,
    DateMismatchError: 409,
    WriteError: 500,
}


def register_recorder(app: Flask, container: Container, kind: RecordKind, *, slug: str, template: str) -> None:
    """Page + JSON API for one recorder screen.

    Every API response carries the workspace snapshot and the notices produced
    since the previous response, so the page script only has to re-render.
    Calls carry the tab id in the `X-Tab-Id` header, and edits carry the date
    the tab is showing.
    """

    def _session_key() -> str:
        if "ws" not in session:
            session["ws"] = uuid.uuid4().hex
        return session["ws"]

    def _tab_workspace() -> TrackingWorkspace:
        tab = (request.headers.get(TAB_HEADER) or "")[:64]
        return container.workspaces.get_or_create(_session_key(), kind, tab)

    def _workspace(day: Optional[str] = None) -> TrackingWorkspace:
        ws = _tab_workspace()
        if day:
            ws.open(iso(parse_iso_date(day)))
        elif not ws.opened:
            ws.open(today_iso())
        return ws

    def _target_date(ws: TrackingWorkspace, data: dict) -> None:
        day = data.get("date")
        if day:
            ws.ensure_date(iso(parse_iso_date(str(day))))
        elif not ws.opened:
            ws.open(today_iso())

    def _payload() -> dict:
        if request.is_json:
            return request.get_json(silent=True) or {}
        return request.form.to_dict()

    def _state(ws: TrackingWorkspace, *, message: Optional[str] = None, status: int = 200, **extra):
        notices = ws.poll()
        body = {"success": status < 400, "state": ws.snapshot(), "notices": [_notice(n) for n in notices]}
        if message:
            body["message"] = message
        body.update(extra)
        return jsonify(body), status

    def _error(ws: Optional[TrackingWorkspace], e: Exception, message: Optional[str] = None, **extra):
        status = next((code for exc, code in _STATUS_CODES.items() if isinstance(e, exc)), 500)
        if ws is None:
            return jsonify({"success": False, "message": message or str(e)}), status
        return _state(ws, message=message or str(e), status=status, **extra)

    def page():
        day = request.args.get("date") or today_iso()
        try:
            day = iso(parse_iso_date(day))
        except ValidationError:
            day = today_iso()
        return render_template(
            template,
            kind=kind,
            slug=slug,
            date=day,
            poll_seconds=app.config.get("REALTIME_POLL_SECONDS", DEFAULT_REALTIME_POLL_SECONDS),
            debounce_ms=app.config.get("SEARCH_DEBOUNCE_MS", DEFAULT_SEARCH_DEBOUNCE_MS),
            active_page=slug,
        )

    def state():
        try:
            ws = _workspace(request.args.get("date"))
        except ValidationError as e:
            return _error(None, e)
        return _state(ws)

    def search():
        ws = _workspace()
        ws.set_query(str(_payload().get("q", "")))
        return _state(ws)

    def toggle():
        ws = _tab_workspace()
        data = _payload()
        try:
            _target_date(ws, data)
            ws.toggle(
                str(data.get("member_id", "")),
                str(data.get("status", "")),
                actor_id=current_capabilities().user_id,
            )
        except (ValidationError, DateMismatchError) as e:
            return _error(ws, e)
        except WriteError as e:
            return _error(ws, e, "فشل تحديث الحالة")
        return _state(ws)

    def notes():
        ws = _tab_workspace()
        data = _payload()
        try:
            _target_date(ws, data)
            ws.update_notes(str(data.get("member_id", "")), str(data.get("notes", "")))
        except (ValidationError, DateMismatchError) as e:
            return _error(ws, e)
        return _state(ws)

    def bulk():
        ws = _tab_workspace()
        data = _payload()
        op = data.get("op")
        try:
            _target_date(ws, data)
            if op == "mark_all":
                count = ws.mark_all(str(data.get("status", "")))
            elif op == "mark_remaining":
                count = ws.mark_remaining(str(data.get("status", "")))
            elif op == "reset":
                count = ws.reset_filtered()
            else:
                raise ValidationError("عملية غير معروفة")
        except (ValidationError, DateMismatchError) as e:
            return _error(ws, e)
        return _state(ws, count=count)

    def save():
        ws = _tab_workspace()
        data = _payload()
        confirmed = str(data.get("confirmed", "")).lower() in ("1", "true", "yes", "on")
        try:
            _target_date(ws, data)
            count = ws.save_all(actor_id=current_capabilities().user_id, confirmed=confirmed)
        except ConfirmationRequired as e:
            return _error(ws, e, confirm=True)
        except (AuthenticationError, ValidationError, DateMismatchError) as e:
            return _error(ws, e)
        except WriteError as e:
            return _error(ws, e, kind.save_failed_message)
        except Exception as e:
            logger.exception("%s save failed", kind.table)
            return _error(ws, e, kind.save_failed_message)
        return _state(ws, message=kind.saved_message if count else None, count=count)

    views = [
        (f"/{slug}", slug, page, ["GET"]),
        (f"/api/{slug}/state", f"{slug}_state", state, ["GET"]),
        (f"/api/{slug}/search", f"{slug}_search", search, ["POST"]),
        (f"/api/{slug}/toggle", f"{slug}_toggle", toggle, ["POST"]),
        (f"/api/{slug}/notes", f"{slug}_notes", notes, ["POST"]),
        (f"/api/{slug}/bulk", f"{slug}_bulk", bulk, ["POST"]),
        (f"/api/{slug}/save", f"{slug}_save", save, ["POST"]),
    ]
    for rule, endpoint, view, methods in views:
        app.add_url_rule(rule, endpoint=endpoint, view_func=login_required(view), methods=methods)


def _notice(n: Notice) -> dict:
    return {"message": n.message, "level": n.level}
