from __future__ import annotations

import pytest

from src.level_two.level_two.core.exceptions import DateMismatchError, ValidationError
from src.level_two.level_two.members.model import NewMember
from src.level_two.level_two.records.model import ATTENDANCE, VISITATION
from src.level_two.level_two.records.workspace import TrackingWorkspace, WorkspaceRegistry

DAY = "2024-01-05"


@pytest.fixture
def workspace(attendance_repo, members_repo, users_repo, feed, clock):
    ws = TrackingWorkspace(
        ATTENDANCE,
        records=attendance_repo,
        members=members_repo,
        users=users_repo,
        feed=feed,
        clock=clock,
    )
    ws.open(DAY)
    return ws


def test_open_loads_sorted_roster_and_selects_date(workspace):
    assert [m.name for m in workspace.filtered_members()] == ["Bishoy", "Karim", "Mina"]
    assert workspace.reconciler.date == DAY


def test_search_filter_applies_immediately(workspace):
    workspace.set_query("  kar ")

    assert workspace.query == "kar"
    assert [m.name for m in workspace.filtered_members()] == ["Karim"]


def test_bulk_only_touches_filtered_students(workspace):
    workspace.set_query("kar")

    assert workspace.mark_all("absent") == 1
    assert set(workspace.reconciler.records) == {"2"}


def test_filtering_never_mutates_records(workspace):
    workspace.mark_all("present")
    workspace.set_query("zzz")

    assert workspace.filtered_members() == []
    assert workspace.mark_remaining("absent") == 0
    assert len(workspace.reconciler.records) == 3


def test_ensure_date_keeps_unsaved_edits_and_rejects_other_dates(workspace):
    workspace.update_notes("3", "call later")

    workspace.ensure_date(DAY)
    with pytest.raises(DateMismatchError):
        workspace.ensure_date("2024-01-12")

    assert workspace.reconciler.date == DAY
    assert workspace.reconciler.records["3"].notes == "call later"


def test_ensure_date_opens_a_fresh_workspace_on_that_date(attendance_repo, members_repo, users_repo, feed, clock):
    ws = TrackingWorkspace(ATTENDANCE, records=attendance_repo, members=members_repo, users=users_repo, feed=feed, clock=clock)

    ws.ensure_date("2024-01-12")

    assert ws.opened
    assert ws.reconciler.date == "2024-01-12"


def test_toggle_unknown_student_is_rejected(workspace):
    with pytest.raises(ValidationError):
        workspace.toggle("404", "present", actor_id="srv-1")


def test_poll_applies_roster_changes_and_drops_deleted_records(workspace, members_repo):
    workspace.mark_all("present")
    members_repo.create_many([NewMember(name="Andrew")])
    members_repo.delete_by_id("1")

    messages = [n.message for n in workspace.poll()]

    assert messages == ["تم إضافة طالب جديد: Andrew", "تم حذف طالب"]
    assert [m.name for m in workspace.filtered_members()] == ["Andrew", "Bishoy", "Karim"]
    assert "1" not in workspace.reconciler.records


def test_snapshot_exposes_stats_and_tel_links(workspace):
    workspace.toggle("1", "present", actor_id="srv-1")
    snap = workspace.snapshot()

    assert snap["total"] == 3
    assert snap["stats"] == {"positive": 1, "negative": 0}
    assert snap["records"]["1"]["actor_name"] == "Marina"
    mina = next(m for m in snap["members"] if m["id"] == "1")
    assert mina["tel"] == "01001234567"
    assert "sections" not in snap


def test_visitation_snapshot_groups_by_servant(visits_repo, members_repo, users_repo, assignments_repo, feed, clock):
    assignments_repo.mapping.update({"1": "srv-2", "2": "srv-1"})
    ws = TrackingWorkspace(
        VISITATION,
        records=visits_repo,
        members=members_repo,
        users=users_repo,
        feed=feed,
        assignments=assignments_repo,
        clock=clock,
    )
    ws.open(DAY)

    sections = ws.snapshot()["sections"]

    assert [(s["title"], s["member_ids"]) for s in sections] == [
        ("Mariam", ["1"]),
        ("Marina", ["2"]),
        ("طلاب غير موزعين", ["3"]),
    ]

    assignments_repo.upsert_many([("3", "srv-1")])
    ws.poll()
    assert ws.snapshot()["sections"][1]["member_ids"] == ["3", "2"]


def test_close_releases_every_subscription(workspace, feed):
    assert feed.subscription_count == 2
    workspace.close()
    assert feed.subscription_count == 0


def test_registry_reuses_and_evicts_idle_workspaces(attendance_repo, members_repo, users_repo, feed, clock):
    def factory(kind):
        return TrackingWorkspace(kind, records=attendance_repo, members=members_repo, users=users_repo, feed=feed, clock=clock)

    registry = WorkspaceRegistry(factory, idle_seconds=60, clock=clock)
    ws = registry.get_or_create("session-a", ATTENDANCE)
    ws.open(DAY)
    assert registry.get_or_create("session-a", ATTENDANCE) is ws

    clock.advance(61)
    registry.get_or_create("session-b", ATTENDANCE)

    assert len(registry) == 1
    assert feed.subscription_count == 0


def test_registry_discard_closes_session_workspaces(attendance_repo, members_repo, users_repo, feed, clock):
    def factory(kind):
        return TrackingWorkspace(kind, records=attendance_repo, members=members_repo, users=users_repo, feed=feed, clock=clock)

    registry = WorkspaceRegistry(factory, idle_seconds=60, clock=clock)
    registry.get_or_create("s", ATTENDANCE).open(DAY)
    registry.get_or_create("s", VISITATION)

    assert registry.discard("s") == 2
    assert len(registry) == 0
    assert feed.subscription_count == 0


def test_registry_keeps_one_workspace_per_tab(attendance_repo, members_repo, users_repo, feed, clock):
    def factory(kind):
        return TrackingWorkspace(kind, records=attendance_repo, members=members_repo, users=users_repo, feed=feed, clock=clock)

    registry = WorkspaceRegistry(factory, idle_seconds=60, clock=clock)
    first = registry.get_or_create("s", ATTENDANCE, "tab-1")
    second = registry.get_or_create("s", ATTENDANCE, "tab-2")
    first.open(DAY)
    second.open("2024-01-12")

    assert first is not second
    assert registry.get_or_create("s", ATTENDANCE, "tab-1").reconciler.date == DAY
    assert registry.discard("s") == 2
