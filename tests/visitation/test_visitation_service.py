from __future__ import annotations

import pytest

from src.level_two.level_two.core.enums import Role
from src.level_two.level_two.core.exceptions import AuthorizationError, ValidationError
from src.level_two.level_two.members.model import Member
from src.level_two.level_two.visitation.service import AssignmentService, group_by_servant

from tests.fakes import InMemoryAssignments, InMemoryMembers, InMemoryUsers, make_user


def _members(n):
    return [Member(id=str(i), name=f"Student {i:02d}") for i in range(1, n + 1)]


def _servants(n):
    return [make_user(f"srv-{i}", f"Servant{i}", Role.SERVANT, minute=i) for i in range(1, n + 1)]


def test_group_orders_preferred_servants_then_others_then_unassigned():
    members = [Member("1", "Mina"), Member("2", "Andrew"), Member("3", "Karim"), Member("4", "Bishoy")]
    mapping = {"1": "srv-b", "2": "srv-b", "3": "srv-x", "4": None}

    sections = group_by_servant(members, mapping, ["srv-a", "srv-b"], lambda sid: sid.upper())

    assert [(s.servant_id, [m.name for m in s.members]) for s in sections] == [
        ("srv-b", ["Andrew", "Mina"]),
        ("srv-x", ["Karim"]),
        (None, ["Bishoy"]),
    ]
    assert sections[-1].unassigned
    assert sections[0].title == "SRV-B"


def test_group_limits_preferred_order_to_four_servants():
    members = [Member(str(i), f"S{i}") for i in range(5)]
    order = [f"srv-{i}" for i in range(5)]
    mapping = {str(i): f"srv-{4 - i}" for i in range(5)}

    sections = group_by_servant(members, mapping, order, str)

    # the fifth servant still gets a section, after the first four
    assert [s.servant_id for s in sections] == ["srv-0", "srv-1", "srv-2", "srv-3", "srv-4"]


def test_group_empty_input():
    assert group_by_servant([], {}, [], str) == []


def test_distribute_round_robin_across_first_four_servants():
    assignments = InMemoryAssignments()
    svc = AssignmentService(assignments, InMemoryMembers(_members(10)), InMemoryUsers(_servants(5)))

    count = svc.distribute_round_robin(current_role=Role.ADMIN)

    assert count == 10
    assert assignments.mapping["1"] == "srv-1"
    assert assignments.mapping["4"] == "srv-4"
    assert assignments.mapping["5"] == "srv-1"
    assert "srv-5" not in assignments.mapping.values()
    per_servant = [list(assignments.mapping.values()).count(f"srv-{i}") for i in range(1, 5)]
    assert per_servant == [3, 3, 2, 2]


def test_distribute_requires_admin():
    svc = AssignmentService(InMemoryAssignments(), InMemoryMembers(_members(2)), InMemoryUsers(_servants(2)))
    with pytest.raises(AuthorizationError):
        svc.distribute_round_robin(current_role=Role.SERVANT)


def test_distribute_without_servants():
    svc = AssignmentService(InMemoryAssignments(), InMemoryMembers(_members(2)), InMemoryUsers([]))
    with pytest.raises(ValidationError):
        svc.distribute_round_robin(current_role=Role.ADMIN)
