from __future__ import annotations

import uuid
from typing import Optional, Sequence

from ..core.enums import ChangeType
from ..core.exceptions import LoadError, WriteError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json_list, fetchall, fetchone, load_json_list, store_errors
from ..realtime.feed import ChangeFeed
from .model import Member, NewMember
from .repository import MemberRepository

TABLE = "members"


class MySQLMemberRepository(MemberRepository):
    def __init__(self, conn_factory: DatabaseConnection, feed: Optional[ChangeFeed] = None):
        self._conn_factory = conn_factory
        self._feed = feed

    @staticmethod
    def _to_member(r: dict) -> Member:
        phones = load_json_list(r.get("phones"))
        return Member(
            id=str(r["id"]),
            name=r["name"],
            phones=tuple(phones) if phones else None,
            notes=r.get("notes"),
        )

    def list_all(self) -> Sequence[Member]:
        with store_errors(LoadError, "تعذر تحميل الطلاب"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("SELECT id, name, phones, notes FROM members ORDER BY name")
                return [self._to_member(r) for r in fetchall(cur)]

    def get_by_id(self, member_id: str) -> Optional[Member]:
        with store_errors(LoadError, "تعذر تحميل بيانات الطالب"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("SELECT id, name, phones, notes FROM members WHERE id=%s", (member_id,))
                r = fetchone(cur)
                return self._to_member(r) if r else None

    def create_many(self, members: Sequence[NewMember]) -> Sequence[Member]:
        created = [
            Member(id=str(uuid.uuid4()), name=m.name, phones=m.phones, notes=m.notes)
            for m in members
        ]
        if not created:
            return []
        with store_errors(WriteError, "فشل حفظ بيانات الطالب"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.executemany(
                    "INSERT INTO members(id, name, phones, notes) VALUES(%s,%s,%s,%s)",
                    [(m.id, m.name, dump_json_list(m.phones), m.notes) for m in created],
                )
        if self._feed:
            for m in created:
                self._feed.publish(TABLE, ChangeType.INSERT, new=m.to_row())
        return created

    def update(self, member: Member) -> bool:
        old = self.get_by_id(member.id)
        with store_errors(WriteError, "فشل حفظ بيانات الطالب"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE members
                    SET name=%s, phones=%s, notes=%s, updated_at=CURRENT_TIMESTAMP
                    WHERE id=%s
                    """,
                    (member.name, dump_json_list(member.phones), member.notes, member.id),
                )
                # MySQL reports 0 affected rows when the values did not change.
                ok = cur.rowcount > 0 or old is not None
        if ok and self._feed:
            self._feed.publish(
                TABLE, ChangeType.UPDATE, new=member.to_row(), old=old.to_row() if old else None
            )
        return ok

    def delete_by_id(self, member_id: str) -> bool:
        with store_errors(WriteError, "فشل حذف الطالب"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("DELETE FROM members WHERE id=%s", (member_id,))
                ok = cur.rowcount > 0
        if ok and self._feed:
            self._feed.publish(TABLE, ChangeType.DELETE, old={"id": member_id})
        return ok
