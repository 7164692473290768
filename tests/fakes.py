"""In-memory repositories shared by the test modules.

They follow the repository Protocols and publish on a real `ChangeFeed`
exactly like the MySQL implementations do.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta
from typing import Optional, Sequence

from src.level_two.level_two.core.enums import ChangeType, Role
from src.level_two.level_two.core.exceptions import LoadError, WriteError
from src.level_two.level_two.members.model import Member, NewMember
from src.level_two.level_two.realtime.feed import ChangeFeed
from src.level_two.level_two.records.model import Record, RecordKind, ReportRow
from src.level_two.level_two.users.model import User


class InMemoryMembers:
    def __init__(self, members: Sequence[Member] = (), feed: Optional[ChangeFeed] = None):
        self._members: dict[str, Member] = {m.id: m for m in members}
        self._feed = feed
        self._ids = itertools.count(1)
        self.fail_loads = False

    def list_all(self):
        if self.fail_loads:
            raise LoadError("تعذر تحميل الطلاب")
        return list(self._members.values())

    def get_by_id(self, member_id):
        return self._members.get(member_id)

    def create_many(self, members: Sequence[NewMember]):
        created = []
        for m in members:
            member = Member(id=f"new-{next(self._ids)}", name=m.name, phones=m.phones, notes=m.notes)
            self._members[member.id] = member
            created.append(member)
            if self._feed:
                self._feed.publish("members", ChangeType.INSERT, new=member.to_row())
        return created

    def update(self, member: Member):
        old = self._members.get(member.id)
        self._members[member.id] = member
        if self._feed:
            self._feed.publish("members", ChangeType.UPDATE, new=member.to_row(), old=old.to_row() if old else None)
        return True

    def delete_by_id(self, member_id):
        old = self._members.pop(member_id, None)
        if old is None:
            return False
        if self._feed:
            self._feed.publish("members", ChangeType.DELETE, old={"id": member_id})
        return True


class InMemoryRecords:
    """Keyed on (member_id, date); `created_at` is only set on first insert."""

    def __init__(self, kind: RecordKind, feed: Optional[ChangeFeed] = None, *, member_names: Optional[dict] = None):
        self.kind = kind
        self._feed = feed
        self._member_names = member_names if member_names is not None else {}
        self.rows: dict[tuple[str, str], dict] = {}
        self.upsert_calls: list[tuple[str, list[Record], Optional[str]]] = []
        self.load_calls: list[str] = []
        self.fail_writes = False
        self.fail_loads = False
        self._clock = itertools.count()

    def seed(self, day: str, *records: Record) -> None:
        for r in records:
            row = r.to_row(self.kind, day)
            row["created_at"] = "2024-01-01T00:00:00"
            self.rows[(r.member_id, day)] = row

    def list_for_date(self, day):
        self.load_calls.append(day)
        if self.fail_loads:
            raise LoadError("تعذر تحميل السجلات")
        return [Record.from_row(self.kind, row) for (mid, d), row in sorted(self.rows.items()) if d == day]

    def upsert(self, day, records, *, request_id=None):
        self.upsert_calls.append((day, list(records), request_id))
        if self.fail_writes:
            raise WriteError(self.kind.save_failed_message)
        for r in records:
            key = (r.member_id, day)
            old = self.rows.get(key)
            row = r.to_row(self.kind, day)
            row["created_at"] = old["created_at"] if old else f"2024-01-01T00:00:{next(self._clock):02d}"
            self.rows[key] = row
            if self._feed:
                self._feed.publish(
                    self.kind.table,
                    ChangeType.UPDATE if old else ChangeType.INSERT,
                    new=dict(row),
                    old=dict(old) if old else None,
                    request_id=request_id,
                )

    def delete(self, member_id: str, day: str, *, request_id=None):
        old = self.rows.pop((member_id, day))
        if self._feed:
            self._feed.publish(self.kind.table, ChangeType.DELETE, old=old, request_id=request_id)

    def list_range(self, *, start, end, member_id=None):
        if self.fail_loads:
            raise LoadError("تعذر تحميل التقرير")
        out = []
        for (mid, d), row in self.rows.items():
            if start <= d <= end and (member_id is None or mid == member_id):
                out.append(
                    ReportRow(
                        member_id=mid,
                        member_name=self._member_names.get(mid, ""),
                        date=d,
                        status=row["status"],
                        notes=row.get("notes"),
                    )
                )
        out.sort(key=lambda r: r.member_name)
        out.sort(key=lambda r: r.date, reverse=True)
        return out


class InMemoryUsers:
    def __init__(self, users: Sequence[User] = ()):
        self._users: dict[str, User] = {u.id: u for u in users}
        self._ids = itertools.count(1)

    def get_by_id(self, user_id):
        return self._users.get(user_id)

    def get_by_email(self, email):
        return next((u for u in self._users.values() if u.email == email), None)

    def list_all(self):
        return sorted(self._users.values(), key=lambda u: u.created_at or datetime.min, reverse=True)

    def list_by_role(self, role):
        return sorted(
            (u for u in self._users.values() if u.role == role),
            key=lambda u: u.created_at or datetime.min,
        )

    def create_user(self, *, name, email, password_hash, role):
        user_id = f"user-{next(self._ids)}"
        created_at = datetime(2024, 6, 1) + timedelta(minutes=len(self._users))
        self._users[user_id] = User(user_id, name, email, password_hash, role, created_at)
        return user_id

    def delete_by_id(self, user_id):
        return self._users.pop(user_id, None) is not None


class InMemoryAssignments:
    def __init__(self, mapping: Optional[dict] = None, feed: Optional[ChangeFeed] = None):
        self.mapping: dict[str, Optional[str]] = dict(mapping or {})
        self._feed = feed

    def list_all(self):
        return dict(self.mapping)

    def upsert_many(self, rows, *, request_id=None):
        for member_id, servant_id in rows:
            self.mapping[member_id] = servant_id
            if self._feed:
                self._feed.publish(
                    "member_assignments",
                    ChangeType.UPDATE,
                    new={"member_id": member_id, "servant_id": servant_id},
                    request_id=request_id,
                )


def make_user(user_id: str, name: str, role: Role, *, minute: int = 0, password_hash: str = "x") -> User:
    return User(
        id=user_id,
        name=name,
        email=f"{name.lower()}@level2.com",
        password_hash=password_hash,
        role=role,
        created_at=datetime(2024, 1, 1) + timedelta(minutes=minute),
    )
