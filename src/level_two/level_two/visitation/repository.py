from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence


class AssignmentRepository(Protocol):
    """Repository interface for `member_assignments` (member_id -> servant_id, unique per member)."""

    def list_all(self) -> Mapping[str, Optional[str]]:
        raise NotImplementedError

    def upsert_many(self, rows: Sequence[tuple[str, Optional[str]]], *, request_id: Optional[str] = None) -> None:
        raise NotImplementedError
