from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..core.enums import ChangeType


@dataclass(frozen=True)
class ChangeEvent:
    """One row change on a table, as published after a successful write.

    `request_id` is the tag the writer attached to the outgoing request (if any);
    consumers use it to recognise echoes of their own writes.
    """

    table: str
    type: ChangeType
    new: Optional[Mapping[str, Any]] = None
    old: Optional[Mapping[str, Any]] = None
    request_id: Optional[str] = None
    seq: int = field(default=0, compare=False)

    @property
    def row(self) -> Mapping[str, Any]:
        """The row that identifies the change: `new` for inserts/updates, `old` for deletes."""
        if self.type == ChangeType.DELETE:
            return self.old or {}
        return self.new or {}

    def matches(self, table: str, filters: Optional[Mapping[str, Any]]) -> bool:
        if table != self.table:
            return False
        if not filters:
            return True
        row = self.row
        # Delete payloads may only carry the key columns; missing filter columns still deliver.
        return all(str(row[k]) == str(v) for k, v in filters.items() if k in row)


@dataclass(frozen=True)
class Notice:
    """Transient user-facing notification (toast) produced while applying a change."""

    message: str
    level: str = "info"
