from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence

from ..common.text import blank_to_none, matches_query, name_key, normalize_phones
from ..common.validators import require_non_empty
from ..core.exceptions import ValidationError
from .model import Member, NewMember
from .repository import MemberRepository

_IMPORT_SEPARATOR = re.compile(r"[,،]")


def sort_members(members: Iterable[Member]) -> list[Member]:
    return sorted(members, key=lambda m: name_key(m.name))


def filter_members(members: Iterable[Member], query: str) -> list[Member]:
    return [m for m in members if matches_query(m.name, query)]


def parse_bulk_import(text: str) -> list[NewMember]:
    """Parse one student per line: `name, phone, notes` (Latin or Arabic comma)."""

    lines = [line.strip() for line in (text or "").splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        raise ValidationError("الرجاء إدخال بيانات للاستيراد")

    out: list[NewMember] = []
    for line in lines:
        parts = [p.strip() for p in _IMPORT_SEPARATOR.split(line, maxsplit=2)]
        name = parts[0] if parts else ""
        phone = parts[1] if len(parts) > 1 else ""
        notes = parts[2] if len(parts) > 2 else ""
        if not name:
            raise ValidationError("جميع الطلاب يجب أن يكون لديهم اسم")
        phones = normalize_phones([phone])
        out.append(NewMember(name=name, phones=tuple(phones) if phones else None, notes=blank_to_none(notes)))
    return out


class MemberService:
    """Use case: manage the student roster (add / edit / delete / bulk import)."""

    def __init__(self, members: MemberRepository):
        self._members = members

    def list_members(self, query: str = "") -> list[Member]:
        return filter_members(sort_members(self._members.list_all()), query)

    def _clean(self, name: str, phones: Optional[Iterable[str]], notes: Optional[str]) -> NewMember:
        name = require_non_empty(name, "الاسم")
        cleaned = normalize_phones(phones)
        return NewMember(name=name, phones=tuple(cleaned) if cleaned else None, notes=blank_to_none(notes))

    def add_member(self, *, name: str, phones: Optional[Iterable[str]] = None, notes: Optional[str] = None) -> Member:
        created = self._members.create_many([self._clean(name, phones, notes)])
        return created[0]

    def update_member(
        self,
        *,
        member_id: str,
        name: str,
        phones: Optional[Iterable[str]] = None,
        notes: Optional[str] = None,
    ) -> Member:
        existing = self._members.get_by_id(member_id)
        if not existing:
            raise ValidationError("الطالب غير موجود")

        data = self._clean(name, phones, notes)
        member = Member(id=existing.id, name=data.name, phones=data.phones, notes=data.notes)
        self._members.update(member)
        return member

    def delete_member(self, member_id: str) -> None:
        if not self._members.delete_by_id(member_id):
            raise ValidationError("الطالب غير موجود")

    def bulk_import(self, text: str) -> Sequence[Member]:
        return self._members.create_many(parse_bulk_import(text))
