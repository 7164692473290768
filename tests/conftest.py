from __future__ import annotations

import pytest

from src.level_two.level_two.core.enums import Role
from src.level_two.level_two.members.model import Member
from src.level_two.level_two.realtime.feed import ChangeFeed
from src.level_two.level_two.records.model import ATTENDANCE, VISITATION

from tests.fakes import InMemoryAssignments, InMemoryMembers, InMemoryRecords, InMemoryUsers, make_user


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def roster():
    return [
        Member(id="1", name="Mina", phones=("0100 123 4567",)),
        Member(id="2", name="Karim"),
        Member(id="3", name="Bishoy", notes="new"),
    ]


@pytest.fixture
def members_repo(roster, feed):
    return InMemoryMembers(roster, feed)


@pytest.fixture
def member_names(roster):
    return {m.id: m.name for m in roster}


@pytest.fixture
def attendance_repo(feed, member_names):
    return InMemoryRecords(ATTENDANCE, feed, member_names=member_names)


@pytest.fixture
def visits_repo(feed, member_names):
    return InMemoryRecords(VISITATION, feed, member_names=member_names)


@pytest.fixture
def users_repo():
    return InMemoryUsers(
        [
            make_user("admin-1", "Abanoub", Role.ADMIN, minute=0),
            make_user("srv-1", "Marina", Role.SERVANT, minute=1),
            make_user("srv-2", "Mariam", Role.SERVANT, minute=2),
            make_user("srv-3", "Kero", Role.SERVANT, minute=3),
        ]
    )


@pytest.fixture
def assignments_repo(feed):
    return InMemoryAssignments(feed=feed)
