from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Record, RecordKind, ReportRow


class RecordRepository(Protocol):
    """Repository interface for one record table (`attendance` or `visits`).

    Upserts are keyed on (member_id, date); `created_at` is set on first insert
    only. Every write publishes change events tagged with `request_id`.
    """

    kind: RecordKind

    def list_for_date(self, day: str) -> Sequence[Record]:
        raise NotImplementedError

    def upsert(self, day: str, records: Sequence[Record], *, request_id: Optional[str] = None) -> None:
        raise NotImplementedError

    def list_range(self, *, start: str, end: str, member_id: Optional[str] = None) -> Sequence[ReportRow]:
        raise NotImplementedError
