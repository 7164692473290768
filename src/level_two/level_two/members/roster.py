from __future__ import annotations

import logging
from typing import Callable, Optional

from ..core.constants import FALLBACK_MEMBER_NAME
from ..core.enums import ChangeType
from ..core.exceptions import LoadError
from ..realtime.events import ChangeEvent, Notice
from .model import Member
from .repository import MemberRepository
from .service import filter_members, sort_members

logger = logging.getLogger(__name__)


class RosterCache:
    """In-memory, name-sorted roster kept in sync by an initial load plus member change events.

    Roster changes are never predicted locally, so every applied event yields a notice.
    """

    def __init__(self, members: MemberRepository):
        self._repo = members
        self._members: list[Member] = []
        self._delete_listeners: list[Callable[[str], None]] = []

    def load(self) -> list[Member]:
        try:
            self._members = sort_members(self._repo.list_all())
        except LoadError:
            logger.exception("roster load failed; rendering an empty roster")
            self._members = []
        return list(self._members)

    @property
    def members(self) -> list[Member]:
        return list(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def get(self, member_id: str) -> Optional[Member]:
        for m in self._members:
            if m.id == member_id:
                return m
        return None

    def name_of(self, member_id: str) -> str:
        m = self.get(member_id)
        return m.name if m else FALLBACK_MEMBER_NAME

    def filtered(self, query: str) -> list[Member]:
        return filter_members(self._members, query)

    def on_delete(self, listener: Callable[[str], None]) -> None:
        """Register a callback run with the member id after a delete event is applied."""
        self._delete_listeners.append(listener)

    def apply(self, event: ChangeEvent) -> Optional[Notice]:
        if event.type == ChangeType.INSERT and event.new:
            m = Member.from_row(event.new)
            self._members = sort_members([x for x in self._members if x.id != m.id] + [m])
            return Notice(f"تم إضافة طالب جديد: {m.name}")

        if event.type == ChangeType.UPDATE and event.new:
            m = Member.from_row(event.new)
            self._members = sort_members([m if x.id == m.id else x for x in self._members])
            return Notice(f"تم تحديث بيانات الطالب: {m.name}")

        if event.type == ChangeType.DELETE and event.old:
            member_id = str(event.old.get("id"))
            self._members = [x for x in self._members if x.id != member_id]
            for listener in self._delete_listeners:
                listener(member_id)
            return Notice("تم حذف طالب")

        return None
