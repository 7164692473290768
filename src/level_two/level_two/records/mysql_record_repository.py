from __future__ import annotations

from typing import Optional, Sequence

from ..common.datetime_utils import as_iso_date
from ..core.enums import ChangeType
from ..core.exceptions import LoadError, WriteError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, store_errors
from ..realtime.feed import ChangeFeed
from .model import Record, RecordKind, ReportRow
from .repository import RecordRepository


class MySQLRecordRepository(RecordRepository):
    """Record table access for one `RecordKind` (attendance or visits)."""

    def __init__(self, conn_factory: DatabaseConnection, kind: RecordKind, feed: Optional[ChangeFeed] = None):
        self._conn_factory = conn_factory
        self.kind = kind
        self._feed = feed
        # Table/column names come from the fixed RecordKind constants, never from input.
        self._columns = f"member_id, date, status, notes, {kind.actor_column}, created_at"

    def _select_day(self, cur, day: str, member_ids: Optional[Sequence[str]] = None) -> list[dict]:
        sql = f"SELECT {self._columns} FROM {self.kind.table} WHERE date=%s"
        params: list = [day]
        if member_ids:
            sql += f" AND member_id IN ({', '.join(['%s'] * len(member_ids))})"
            params.extend(member_ids)
        cur.execute(sql, tuple(params))
        rows = fetchall(cur)
        for r in rows:
            r["date"] = as_iso_date(r["date"])
            if hasattr(r.get("created_at"), "isoformat"):
                r["created_at"] = r["created_at"].isoformat()
        return rows

    def list_for_date(self, day: str) -> Sequence[Record]:
        with store_errors(LoadError, "تعذر تحميل السجلات"):
            with db_cursor(self._conn_factory) as (_, cur):
                return [Record.from_row(self.kind, r) for r in self._select_day(cur, day)]

    def upsert(self, day: str, records: Sequence[Record], *, request_id: Optional[str] = None) -> None:
        if not records:
            return
        member_ids = [r.member_id for r in records]
        actor = self.kind.actor_column

        with store_errors(WriteError, self.kind.save_failed_message):
            with db_cursor(self._conn_factory) as (_, cur):
                before = {r["member_id"]: r for r in self._select_day(cur, day, member_ids)}
                cur.executemany(
                    f"""
                    INSERT INTO {self.kind.table}(member_id, date, status, notes, {actor})
                    VALUES(%s,%s,%s,%s,%s)
                    ON DUPLICATE KEY UPDATE
                        status=VALUES(status),
                        notes=VALUES(notes),
                        {actor}=VALUES({actor})
                    """,
                    [(r.member_id, day, r.status, r.notes or None, r.actor_id) for r in records],
                )
                after = self._select_day(cur, day, member_ids)

        if self._feed:
            for row in after:
                old = before.get(row["member_id"])
                self._feed.publish(
                    self.kind.table,
                    ChangeType.UPDATE if old else ChangeType.INSERT,
                    new=row,
                    old=old,
                    request_id=request_id,
                )

    def list_range(self, *, start: str, end: str, member_id: Optional[str] = None) -> Sequence[ReportRow]:
        sql = f"""
            SELECT r.member_id, m.name AS member_name, r.date, r.status, r.notes
            FROM {self.kind.table} r
            JOIN members m ON m.id = r.member_id
            WHERE r.date BETWEEN %s AND %s
        """
        params: list = [start, end]
        if member_id:
            sql += " AND r.member_id=%s"
            params.append(member_id)
        sql += " ORDER BY r.date DESC, m.name"

        with store_errors(LoadError, "تعذر تحميل التقرير"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(sql, tuple(params))
                return [ReportRow.from_row(r) for r in fetchall(cur)]

