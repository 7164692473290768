from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..common.datetime_utils import iso, months_ago, parse_iso_date
from ..core.constants import CHART_MAX_DATES, DEFAULT_REPORT_MONTHS
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from ..records.model import ReportRow
from ..records.repository import RecordRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportRange:
    start: str
    end: str
    member_id: Optional[str] = None


@dataclass(frozen=True)
class ReportData:
    range: ReportRange
    rows: list[ReportRow]
    stats: dict
    chart: list[dict]
    by_date: list[dict] = field(default_factory=list)


def _percent(part: int, total: int) -> int:
    # Half-up rounding, like a browser's Math.round.
    if total <= 0:
        return 0
    return (part * 200 + total) // (total * 2)


def summarize(rows: list[ReportRow]) -> dict:
    present = sum(1 for r in rows if r.status == AttendanceStatus.PRESENT.value)
    absent = sum(1 for r in rows if r.status == AttendanceStatus.ABSENT.value)
    return {
        "total_meetings": len({r.date for r in rows}),
        "total_students": len({r.member_id for r in rows}),
        "average_attendance": _percent(present, len(rows)),
        "total_present": present,
        "total_absent": absent,
    }


def chart_points(rows: list[ReportRow], *, limit: int = CHART_MAX_DATES) -> list[dict]:
    """Per-date present/absent counts, oldest first, last `limit` dates."""
    points: dict[str, dict] = {}
    for r in rows:
        p = points.setdefault(r.date, {"date": r.date, "present": 0, "absent": 0})
        if r.status == AttendanceStatus.PRESENT.value:
            p["present"] += 1
        else:
            p["absent"] += 1
    ordered = [points[d] for d in sorted(points)]
    return ordered[-limit:] if limit > 0 else []


def group_by_date(rows: list[ReportRow]) -> list[dict]:
    """Rows grouped per date, newest first, with present/absent counts."""
    groups: dict[str, list[ReportRow]] = {}
    for r in rows:
        groups.setdefault(r.date, []).append(r)

    out = []
    for day in sorted(groups, reverse=True):
        items = groups[day]
        present = sum(1 for r in items if r.status == AttendanceStatus.PRESENT.value)
        out.append({"date": day, "rows": items, "present": present, "absent": len(items) - present})
    return out


class ReportService:
    """Use case: attendance analytics over a date range."""

    def __init__(self, attendance: RecordRepository, *, default_months: int = DEFAULT_REPORT_MONTHS):
        self._attendance = attendance
        self._default_months = default_months

    def resolve_range(
        self,
        *,
        start: Optional[str],
        end: Optional[str],
        member_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ReportRange:
        today = today or date.today()
        end_d = parse_iso_date(end) if end else today
        start_d = parse_iso_date(start) if start else months_ago(today, self._default_months)
        if start_d > end_d:
            raise ValidationError("تاريخ البداية يجب أن يكون قبل تاريخ النهاية")
        member_id = (member_id or "").strip()
        if member_id == "all":
            member_id = ""
        return ReportRange(start=iso(start_d), end=iso(end_d), member_id=member_id or None)

    def build(self, rng: ReportRange) -> ReportData:
        rows = list(self._attendance.list_range(start=rng.start, end=rng.end, member_id=rng.member_id))
        logger.debug("report %s..%s member=%s: %s rows", rng.start, rng.end, rng.member_id, len(rows))
        return ReportData(
            range=rng,
            rows=rows,
            stats=summarize(rows),
            chart=chart_points(rows),
            by_date=group_by_date(rows),
        )
