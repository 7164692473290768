from __future__ import annotations

import pytest
from werkzeug.security import generate_password_hash

from src.level_two.level_two.container import wire_container
from src.level_two.level_two.core.constants import SAVE_CONFIRM_PROMPT
from src.level_two.level_two.core.enums import Role
from src.level_two.level_two.main import create_app

from tests.fakes import InMemoryUsers, make_user

PASSWORD = "password123"


@pytest.fixture
def container(feed, members_repo, attendance_repo, visits_repo, assignments_repo):
    users = InMemoryUsers(
        [
            make_user("admin-1", "Abanoub", Role.ADMIN, password_hash=generate_password_hash(PASSWORD)),
            make_user("srv-1", "Marina", Role.SERVANT, minute=1, password_hash=generate_password_hash(PASSWORD)),
            make_user("srv-2", "Mariam", Role.SERVANT, minute=2),
        ]
    )
    return wire_container(
        feed=feed,
        users_repo=users,
        members_repo=members_repo,
        attendance_repo=attendance_repo,
        visits_repo=visits_repo,
        assignments_repo=assignments_repo,
    )


@pytest.fixture
def app(container):
    return create_app(container, settings_module="config.testing")


@pytest.fixture
def client(app):
    return app.test_client()


def _login(client, email):
    return client.post("/login", data={"email": email, "password": PASSWORD})


def test_login_by_email_redirects_with_welcome(client):
    resp = _login(client, "marina@level2.com")

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/attendance")
    with client.session_transaction() as sess:
        assert sess["role"] == "servant"
        assert "_flashes" in sess


def test_login_with_bad_password_stays_on_page(client):
    resp = client.post("/login", data={"email": "marina@level2.com", "password": "nope"})
    assert resp.status_code == 200
    assert "البريد الإلكتروني أو كلمة المرور غير صحيحة" in resp.get_data(as_text=True)


def test_pages_and_api_require_login(client):
    assert client.get("/attendance").status_code == 302
    resp = client.get("/api/attendance/state?date=2024-01-05")
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_user_management_is_admin_only(client):
    _login(client, "marina@level2.com")
    page = client.get("/attendance").get_data(as_text=True)
    assert "إدارة المستخدمين" not in page
    assert client.get("/users").status_code == 403

    client.get("/logout")
    _login(client, "abanoub@level2.com")
    assert "إدارة المستخدمين" in client.get("/attendance").get_data(as_text=True)
    assert client.get("/users").status_code == 200


def test_attendance_api_flow(client, attendance_repo):
    _login(client, "marina@level2.com")

    state = client.get("/api/attendance/state?date=2024-01-05").get_json()["state"]
    assert [m["name"] for m in state["members"]] == ["Bishoy", "Karim", "Mina"]

    resp = client.post("/api/attendance/toggle", json={"member_id": "1", "status": "present"})
    assert resp.status_code == 200
    assert attendance_repo.rows[("1", "2024-01-05")]["recorded_by"] == "srv-1"
    assert resp.get_json()["notices"] == []

    resp = client.post("/api/attendance/bulk", json={"op": "mark_remaining", "status": "absent"})
    body = resp.get_json()
    assert body["count"] == 3
    assert body["state"]["has_unsaved_changes"] is True
    assert body["state"]["stats"] == {"positive": 1, "negative": 2}

    resp = client.post("/api/attendance/save", json={})
    assert resp.status_code == 409
    assert resp.get_json()["message"] == SAVE_CONFIRM_PROMPT
    assert resp.get_json()["confirm"] is True

    resp = client.post("/api/attendance/save", json={"confirmed": 1})
    assert resp.status_code == 200
    assert resp.get_json()["count"] == 3
    assert len(attendance_repo.rows) == 3


def test_tabs_on_different_dates_keep_their_own_edits(client, attendance_repo):
    _login(client, "marina@level2.com")
    tab_a = {"X-Tab-Id": "tab-a"}
    tab_b = {"X-Tab-Id": "tab-b"}

    client.get("/api/attendance/state?date=2024-01-05", headers=tab_a)
    client.post("/api/attendance/notes", json={"date": "2024-01-05", "member_id": "3", "notes": "call later"}, headers=tab_a)
    client.get("/api/attendance/state?date=2024-01-12", headers=tab_b)

    resp = client.post(
        "/api/attendance/toggle", json={"date": "2024-01-05", "member_id": "1", "status": "present"}, headers=tab_a
    )

    assert resp.status_code == 200
    assert list(attendance_repo.rows) == [("1", "2024-01-05")]
    state = resp.get_json()["state"]
    assert state["date"] == "2024-01-05"
    assert state["records"]["3"]["notes"] == "call later"
    assert state["has_unsaved_changes"] is True


def test_edit_for_a_date_the_tab_no_longer_shows_is_rejected(client, attendance_repo):
    _login(client, "marina@level2.com")
    client.get("/api/attendance/state?date=2024-01-05")
    client.get("/api/attendance/state?date=2024-01-12")

    resp = client.post("/api/attendance/toggle", json={"date": "2024-01-05", "member_id": "1", "status": "present"})

    assert resp.status_code == 409
    assert "confirm" not in resp.get_json()
    assert resp.get_json()["state"]["date"] == "2024-01-12"
    assert attendance_repo.rows == {}


def test_edit_on_a_fresh_workspace_uses_the_posted_date(client, attendance_repo):
    _login(client, "marina@level2.com")

    resp = client.post(
        "/api/attendance/toggle",
        json={"date": "2024-02-02", "member_id": "2", "status": "absent"},
        headers={"X-Tab-Id": "reopened"},
    )

    assert resp.status_code == 200
    assert list(attendance_repo.rows) == [("2", "2024-02-02")]


def test_search_then_bulk_only_touches_matches(client):
    _login(client, "marina@level2.com")
    client.get("/api/attendance/state?date=2024-01-05")

    searched = client.post("/api/attendance/search", json={"q": "kar"}).get_json()["state"]
    resp = client.post("/api/attendance/bulk", json={"date": "2024-01-05", "op": "mark_all", "status": "absent"})

    assert [m["name"] for m in searched["members"]] == ["Karim"]
    assert resp.get_json()["count"] == 1
    assert list(resp.get_json()["state"]["records"]) == ["2"]


def test_toggle_failure_returns_reverted_state(client, attendance_repo):
    _login(client, "marina@level2.com")
    client.get("/api/attendance/state?date=2024-01-05")
    attendance_repo.fail_writes = True

    resp = client.post("/api/attendance/toggle", json={"member_id": "2", "status": "present"})

    assert resp.status_code == 500
    assert resp.get_json()["state"]["records"] == {}


def test_invalid_status_is_rejected(client):
    _login(client, "marina@level2.com")
    resp = client.post("/api/attendance/toggle", json={"member_id": "1", "status": "visited"})
    assert resp.status_code == 400


def test_distribution_is_admin_only(client, assignments_repo):
    _login(client, "marina@level2.com")
    assert client.post("/api/visitation/distribute").status_code == 403

    client.get("/logout")
    _login(client, "abanoub@level2.com")
    resp = client.post("/api/visitation/distribute")

    assert resp.status_code == 200
    assert resp.get_json()["message"] == "تم توزيع الطلاب على 4 خدام بالتساوي"
    assert set(assignments_repo.mapping.values()) == {"srv-1", "srv-2"}


def test_visitation_state_has_sections(client):
    _login(client, "marina@level2.com")
    state = client.get("/api/visitation/state?date=2024-01-05").get_json()["state"]
    assert state["sections"][-1]["member_ids"] == ["3", "2", "1"]


def test_students_add_and_bulk_import(client, members_repo):
    _login(client, "marina@level2.com")

    client.post("/students/add", data={"name": "Andrew", "phones": "0100\n0100\n", "notes": ""})
    client.post("/students/import", data={"data": "Fady، 0111، new\nGeorge"})

    names = sorted(m.name for m in members_repo.list_all())
    assert names == ["Andrew", "Bishoy", "Fady", "George", "Karim", "Mina"]
    andrew = next(m for m in members_repo.list_all() if m.name == "Andrew")
    assert andrew.phones == ("0100",)


def test_signup_creates_servant_account(client, container):
    resp = client.post(
        "/signup",
        data={"name": "Kero", "email": "kero@level2.com", "password": "secret1", "confirm_password": "secret1"},
    )
    assert resp.status_code == 302
    assert container.users_repo.get_by_email("kero@level2.com").role == Role.SERVANT


def test_report_csv_export(client, attendance_repo):
    _login(client, "marina@level2.com")
    client.get("/api/attendance/state?date=2024-01-05")
    client.post("/api/attendance/toggle", json={"member_id": "1", "status": "present"})

    resp = client.get("/reports/export.csv?start=2024-01-01&end=2024-01-31")

    assert resp.status_code == 200
    assert resp.headers["Content-Disposition"] == "attachment; filename=attendance_report_20240101_20240131.csv"
    assert resp.data.startswith(b"\xef\xbb\xbf")
    assert '"2024-01-05","Mina","حاضر","-"' in resp.data.decode("utf-8-sig")


def test_reports_page_and_print_view(client):
    _login(client, "marina@level2.com")
    assert client.get("/reports?start=2024-01-01&end=2024-01-31").status_code == 200
    assert "تقرير الحضور" in client.get("/reports/export.html?start=2024-01-01&end=2024-01-31").get_data(as_text=True)


def test_logout_closes_workspaces(client, container, feed):
    _login(client, "marina@level2.com")
    client.get("/api/attendance/state?date=2024-01-05")
    assert feed.subscription_count == 2

    client.get("/logout")

    assert len(container.workspaces) == 0
    assert feed.subscription_count == 0
