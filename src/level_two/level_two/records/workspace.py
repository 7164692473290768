from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Hashable, Optional

from ..common.text import tel_link
from ..core.constants import FALLBACK_SERVANT_NAME
from ..core.exceptions import DateMismatchError, ValidationError
from ..members.model import Member
from ..members.repository import MemberRepository
from ..members.roster import RosterCache
from ..realtime.events import Notice
from ..realtime.feed import ChangeFeed, Subscription
from ..users.repository import UserRepository
from ..users.service import UserDirectory
from ..visitation.repository import AssignmentRepository
from ..visitation.service import AssignmentCache, group_by_servant
from .model import RecordKind
from .reconciler import RecordReconciler
from .repository import RecordRepository

logger = logging.getLogger(__name__)


class TrackingWorkspace:
    """Live state of one recorder screen (attendance or visitation) for one browser tab.

    Owns the roster cache, the reconciler of the selected date, the active
    search filter and every feed subscription. Request handlers hold `lock` while
    they drive it.
    """

    def __init__(
        self,
        kind: RecordKind,
        *,
        records: RecordRepository,
        members: MemberRepository,
        users: UserRepository,
        feed: ChangeFeed,
        assignments: Optional[AssignmentRepository] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.kind = kind
        self.lock = threading.RLock()
        self._feed = feed
        self._clock = clock

        self.roster = RosterCache(members)
        self.users = UserDirectory(users)
        self.assignments = AssignmentCache(assignments) if assignments is not None else None
        self._query = ""
        self.reconciler = RecordReconciler(
            kind,
            records,
            feed=feed,
            member_name=self.roster.name_of,
            user_name=self.users.name_of,
        )

        self.roster.on_delete(self.reconciler.remove_member)
        if self.assignments is not None:
            self.roster.on_delete(self.assignments.forget)

        self._member_sub: Optional[Subscription] = None
        self._assignment_sub: Optional[Subscription] = None
        self.last_seen = clock()

    @property
    def opened(self) -> bool:
        return self._member_sub is not None

    def touch(self) -> None:
        self.last_seen = self._clock()

    def idle_for(self) -> float:
        return self._clock() - self.last_seen

    def open(self, day: str) -> None:
        """Load the roster (first call only) and select `day`."""
        with self.lock:
            if self._member_sub is None:
                # Subscribe before loading so nothing published in between is missed.
                self._member_sub = self._feed.subscribe("members")
                self.roster.load()
                self.users.load()
                if self.assignments is not None:
                    self._assignment_sub = self._feed.subscribe(AssignmentCache.table)
                    self.assignments.load()
            if self.reconciler.date != day:
                self.reconciler.select_date(day)
            self.touch()

    def ensure_date(self, day: str) -> None:
        """Open `day` on a fresh workspace; refuse an edit aimed at any other date."""
        with self.lock:
            if not self.opened:
                self.open(day)
            elif self.reconciler.date != day:
                raise DateMismatchError(
                    f"التاريخ المعروض ({day}) لا يطابق تاريخ الجلسة ({self.reconciler.date}). أعد تحميل الصفحة."
                )

    def poll(self) -> list[Notice]:
        """Drain every subscription into the caches; return the notices produced since the last poll."""
        with self.lock:
            notices: list[Notice] = []
            if self._member_sub is not None:
                for event in self._member_sub.drain():
                    notice = self.roster.apply(event)
                    if notice is not None:
                        notices.append(notice)
            if self._assignment_sub is not None and self.assignments is not None:
                for event in self._assignment_sub.drain():
                    self.assignments.apply(event)
            notices.extend(self.reconciler.drain())
            self.touch()
            return notices

    # ----- search -----

    def set_query(self, text: str) -> None:
        """Apply `text` as the active filter at once; the page debounces keystrokes."""
        with self.lock:
            self._query = (text or "").strip()
            self.touch()

    @property
    def query(self) -> str:
        return self._query

    def filtered_members(self) -> list[Member]:
        return self.roster.filtered(self.query)

    def filtered_ids(self) -> list[str]:
        return [m.id for m in self.filtered_members()]

    # ----- record edits -----

    def toggle(self, member_id: str, status: str, *, actor_id: Optional[str]):
        with self.lock:
            if self.roster.get(member_id) is None:
                raise ValidationError("الطالب غير موجود")
            return self.reconciler.toggle_status(member_id, status, actor_id=actor_id)

    def update_notes(self, member_id: str, text: str):
        with self.lock:
            if self.roster.get(member_id) is None:
                raise ValidationError("الطالب غير موجود")
            return self.reconciler.update_notes(member_id, text)

    def save_all(self, *, actor_id: Optional[str], confirmed: bool = False) -> int:
        with self.lock:
            return self.reconciler.save_all(actor_id=actor_id, confirmed=confirmed)

    # ----- bulk operators over the filtered subset -----

    def mark_all(self, status: str) -> int:
        with self.lock:
            return self.reconciler.mark_all(self.filtered_ids(), status)

    def mark_remaining(self, status: str) -> int:
        with self.lock:
            return self.reconciler.mark_remaining(self.filtered_ids(), status)

    def reset_filtered(self) -> int:
        with self.lock:
            return self.reconciler.reset_filtered(self.filtered_ids())

    # ----- view model -----

    def snapshot(self) -> dict:
        with self.lock:
            members = self.filtered_members()
            records = self.reconciler.records
            stats = self.reconciler.stats()
            data = {
                "date": self.reconciler.date,
                "query": self.query,
                "total": len(self.roster),
                "stats": stats,
                "has_unsaved_changes": self.reconciler.has_unsaved_changes,
                "members": [_member_view(m) for m in members],
                "records": {
                    mid: {
                        "status": r.status,
                        "notes": r.notes,
                        "actor_id": r.actor_id,
                        "actor_name": self.users.name_of(r.actor_id) if r.actor_id else None,
                    }
                    for mid, r in records.items()
                },
            }
            if self.assignments is not None:
                sections = group_by_servant(
                    members,
                    self.assignments.mapping,
                    self.users.ordered_ids,
                    lambda sid: self.users.name_of(sid, FALLBACK_SERVANT_NAME),
                )
                data["sections"] = [
                    {
                        "servant_id": s.servant_id,
                        "title": s.title,
                        "member_ids": [m.id for m in s.members],
                    }
                    for s in sections
                ]
            return data

    def close(self) -> None:
        with self.lock:
            self.reconciler.close()
            for sub in (self._member_sub, self._assignment_sub):
                if sub is not None:
                    sub.close()
            self._member_sub = None
            self._assignment_sub = None


def _member_view(m: Member) -> dict:
    return {
        "id": m.id,
        "name": m.name,
        "phones": list(m.phones or ()),
        "notes": m.notes,
        "tel": tel_link(m.phones),
    }


class WorkspaceRegistry:
    """(session key, tab id, table) -> TrackingWorkspace, with idle eviction.

    Each browser tab gets its own workspace so tabs on different dates never
    share a reconciler.
    """

    def __init__(
        self,
        factory: Callable[[RecordKind], TrackingWorkspace],
        *,
        idle_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = factory
        self._idle_seconds = idle_seconds
        self._clock = clock
        self._items: dict[tuple[Hashable, str, str], TrackingWorkspace] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._items)

    def get_or_create(self, key: Hashable, kind: RecordKind, tab: str = "") -> TrackingWorkspace:
        self.evict_idle()
        slot = (key, tab, kind.table)
        with self._lock:
            ws = self._items.get(slot)
            if ws is None:
                ws = self._factory(kind)
                self._items[slot] = ws
                logger.debug("workspace created for %s/%s/%s", key, tab, kind.table)
            return ws

    def discard(self, key: Hashable) -> int:
        """Close every workspace of one session, all tabs included (sign-out)."""
        with self._lock:
            doomed = [k for k in self._items if k[0] == key]
            closing = [self._items.pop(k) for k in doomed]
        for ws in closing:
            ws.close()
        return len(closing)

    def evict_idle(self) -> int:
        with self._lock:
            doomed = [k for k, ws in self._items.items() if ws.idle_for() > self._idle_seconds]
            closing = [self._items.pop(k) for k in doomed]
        for ws in closing:
            ws.close()
        if closing:
            logger.info("evicted %s idle workspaces", len(closing))
        return len(closing)

    def close_all(self) -> None:
        with self._lock:
            closing = list(self._items.values())
            self._items.clear()
        for ws in closing:
            ws.close()
