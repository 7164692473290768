from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class Member:
    """Domain entity: a student on the roster.

    `phones` is an ordered set of free-text numbers (None when empty).
    """

    id: str
    name: str
    phones: Optional[tuple[str, ...]] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Member":
        phones = row.get("phones")
        return cls(
            id=str(row["id"]),
            name=str(row.get("name") or ""),
            phones=tuple(phones) if phones else None,
            notes=row.get("notes") or None,
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phones": list(self.phones) if self.phones else None,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class NewMember:
    """Input for single add / bulk import (no id yet)."""

    name: str
    phones: Optional[tuple[str, ...]] = None
    notes: Optional[str] = None
