from __future__ import annotations

import csv
import io
from typing import Iterable

import pandas as pd

from ..core.enums import AttendanceStatus
from ..records.model import ReportRow

REPORT_TITLE = "تقرير الحضور"
COLUMNS = ["التاريخ", "الطالب", "الحالة", "الملاحظات"]


def export_rows(rows: Iterable[ReportRow]) -> list[dict]:
    """Flatten report rows into the exported columns."""
    return [
        {
            "التاريخ": r.date,
            "الطالب": r.member_name,
            "الحالة": "حاضر" if r.status == AttendanceStatus.PRESENT.value else "غائب",
            "الملاحظات": r.notes or "-",
        }
        for r in rows
    ]


def to_csv_bytes(rows: Iterable[ReportRow]) -> bytes:
    """Comma-separated, every field quoted, UTF-8 with BOM so Excel opens Arabic text correctly."""
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=COLUMNS, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writeheader()
    for row in export_rows(rows):
        writer.writerow(row)
    return out.getvalue().encode("utf-8-sig")


def to_xlsx_bytes(rows: Iterable[ReportRow], *, sheet_name: str = "الحضور") -> bytes:
    df = pd.DataFrame(export_rows(rows), columns=COLUMNS)
    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
    return out.getvalue()


def export_filename(start: str, end: str, ext: str) -> str:
    return f"attendance_report_{start.replace('-', '')}_{end.replace('-', '')}.{ext}"
