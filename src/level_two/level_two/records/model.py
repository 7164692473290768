from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..common.datetime_utils import as_iso_date
from ..core.enums import AttendanceStatus, VisitStatus
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class RecordKind:
    """Describes one per-student-per-date record table (attendance or visits).

    The attendance and visitation screens share the same reconciliation logic;
    only the table, the actor column, the status pair and the wording differ.
    """

    table: str
    actor_column: str
    positive: str
    negative: str
    labels: Mapping[str, str] = field(default_factory=dict)
    removed_message: str = ""
    saved_message: str = ""
    save_failed_message: str = ""

    @property
    def statuses(self) -> tuple[str, str]:
        return (self.positive, self.negative)

    def require_status(self, value: Any) -> str:
        status = getattr(value, "value", value)
        if status not in self.statuses:
            raise ValidationError("الحالة غير صالحة")
        return str(status)

    def label(self, status: str) -> str:
        return self.labels.get(status, status)


ATTENDANCE = RecordKind(
    table="attendance",
    actor_column="recorded_by",
    positive=AttendanceStatus.PRESENT.value,
    negative=AttendanceStatus.ABSENT.value,
    labels={AttendanceStatus.PRESENT.value: "حاضر", AttendanceStatus.ABSENT.value: "غائب"},
    removed_message="تم إزالة سجل الحضور لـ {name}",
    saved_message="تم حفظ الحضور بنجاح",
    save_failed_message="فشل حفظ الحضور",
)

VISITATION = RecordKind(
    table="visits",
    actor_column="visited_by",
    positive=VisitStatus.VISITED.value,
    negative=VisitStatus.NOT_VISITED.value,
    labels={VisitStatus.VISITED.value: "تم الافتقاد", VisitStatus.NOT_VISITED.value: "لم يُفتقد"},
    removed_message="تم إزالة سجل الافتقاد لـ {name}",
    saved_message="تم حفظ الافتقاد بنجاح",
    save_failed_message="فشل حفظ الافتقاد",
)


@dataclass(frozen=True)
class Record:
    """One attendance/visit record for the selected date, keyed by `member_id`."""

    member_id: str
    status: str
    notes: str = ""
    actor_id: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, kind: RecordKind, row: Mapping[str, Any]) -> "Record":
        created_at = row.get("created_at")
        return cls(
            member_id=str(row["member_id"]),
            status=str(row["status"]),
            notes=row.get("notes") or "",
            actor_id=row.get(kind.actor_column) or None,
            created_at=created_at.isoformat() if hasattr(created_at, "isoformat") else created_at,
        )

    def to_row(self, kind: RecordKind, day: str) -> dict:
        return {
            "member_id": self.member_id,
            "date": day,
            "status": self.status,
            "notes": self.notes or None,
            kind.actor_column: self.actor_id,
        }


@dataclass(frozen=True)
class ReportRow:
    """Read-model for reports/exports (record joined with the member's name)."""

    member_id: str
    member_name: str
    date: str
    status: str
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ReportRow":
        return cls(
            member_id=str(row["member_id"]),
            member_name=row.get("member_name") or "",
            date=as_iso_date(row["date"]),
            status=str(row["status"]),
            notes=row.get("notes") or None,
        )
