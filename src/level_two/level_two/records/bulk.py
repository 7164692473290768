"""Bulk operators over the record map.

Pure functions: each takes the current map plus the ids of the *filtered*
students and returns a new map. Students outside `member_ids` are never touched.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from .model import Record


def mark_all(records: Mapping[str, Record], member_ids: Iterable[str], status: str) -> dict[str, Record]:
    """Set `status` for every given student, keeping existing notes."""
    out = dict(records)
    for mid in member_ids:
        prev = out.get(mid)
        out[mid] = Record(member_id=mid, status=status, notes=prev.notes if prev else "")
    return out


def mark_remaining(records: Mapping[str, Record], member_ids: Iterable[str], status: str) -> dict[str, Record]:
    """Set `status` only for given students that have no record yet."""
    out = dict(records)
    for mid in member_ids:
        if mid not in out:
            out[mid] = Record(member_id=mid, status=status)
    return out


def reset(records: Mapping[str, Record], member_ids: Iterable[str]) -> dict[str, Record]:
    """Drop the records of the given students (back to "no record")."""
    drop = set(member_ids)
    return {mid: rec for mid, rec in records.items() if mid not in drop}
