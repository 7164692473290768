from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ..core.enums import ChangeType
from ..core.exceptions import LoadError, WriteError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, store_errors
from ..realtime.feed import ChangeFeed
from .repository import AssignmentRepository

TABLE = "member_assignments"


class MySQLAssignmentRepository(AssignmentRepository):
    def __init__(self, conn_factory: DatabaseConnection, feed: Optional[ChangeFeed] = None):
        self._conn_factory = conn_factory
        self._feed = feed

    def list_all(self) -> Mapping[str, Optional[str]]:
        with store_errors(LoadError, "تعذر تحميل توزيع الطلاب"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("SELECT member_id, servant_id FROM member_assignments")
                return {str(r["member_id"]): r.get("servant_id") for r in fetchall(cur)}

    def upsert_many(self, rows: Sequence[tuple[str, Optional[str]]], *, request_id: Optional[str] = None) -> None:
        if not rows:
            return
        with store_errors(WriteError, "فشل توزيع الطلاب. تأكد من امتلاك صلاحيات الادمن"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.executemany(
                    """
                    INSERT INTO member_assignments(member_id, servant_id)
                    VALUES(%s,%s)
                    ON DUPLICATE KEY UPDATE servant_id=VALUES(servant_id)
                    """,
                    list(rows),
                )
        if self._feed:
            for member_id, servant_id in rows:
                self._feed.publish(
                    TABLE,
                    ChangeType.UPDATE,
                    new={"member_id": member_id, "servant_id": servant_id},
                    request_id=request_id,
                )
