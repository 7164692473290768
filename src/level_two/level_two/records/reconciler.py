from __future__ import annotations

import itertools
import logging
import threading
import uuid
from collections import OrderedDict
from typing import Callable, Iterable, Optional

from ..core.constants import FALLBACK_MEMBER_NAME, FALLBACK_USER_NAME, SAVE_CONFIRM_PROMPT
from ..core.enums import ChangeType
from ..core.exceptions import AuthenticationError, ConfirmationRequired, LoadError, ValidationError, WriteError
from ..realtime.events import ChangeEvent, Notice
from ..realtime.feed import ChangeFeed, Subscription
from . import bulk
from .model import Record, RecordKind
from .repository import RecordRepository

logger = logging.getLogger(__name__)

_MAX_TRACKED_REQUESTS = 512


def _new_request_id() -> str:
    return uuid.uuid4().hex


class RecordReconciler:
    """Single source of truth for the records of one selected date.

    Merges three inputs into `records` (member_id -> Record):
    - local edits (toggle, notes, bulk operators),
    - persisted state (`load_for_date`, `save_all`),
    - pushed changes from the feed subscription (`drain` / `apply`).

    Every outgoing write is tagged with a locally generated request id; pushed
    events carrying one of those ids are echoes of our own writes and are merged
    without a notice. Last write observed wins.
    """

    def __init__(
        self,
        kind: RecordKind,
        repo: RecordRepository,
        *,
        feed: Optional[ChangeFeed] = None,
        member_name: Optional[Callable[[str], str]] = None,
        user_name: Optional[Callable[[Optional[str]], str]] = None,
        request_ids: Callable[[], str] = _new_request_id,
    ):
        self.kind = kind
        self._repo = repo
        self._feed = feed
        self._member_name = member_name or (lambda _mid: FALLBACK_MEMBER_NAME)
        self._user_name = user_name or (lambda _uid: FALLBACK_USER_NAME)
        self._request_ids = request_ids

        self._lock = threading.RLock()
        self._records: dict[str, Record] = {}
        self._date: Optional[str] = None
        self._load_seq = itertools.count(1)
        self._latest_load = 0
        self._own_requests: OrderedDict[str, None] = OrderedDict()
        self._subscription: Optional[Subscription] = None
        self.has_unsaved_changes = False

    # ----- state -----

    @property
    def date(self) -> Optional[str]:
        return self._date

    @property
    def records(self) -> dict[str, Record]:
        with self._lock:
            return dict(self._records)

    def get(self, member_id: str) -> Optional[Record]:
        with self._lock:
            return self._records.get(member_id)

    def stats(self) -> dict:
        with self._lock:
            values = list(self._records.values())
        return {
            "positive": sum(1 for r in values if r.status == self.kind.positive),
            "negative": sum(1 for r in values if r.status == self.kind.negative),
        }

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    # ----- date selection / loading -----

    def select_date(self, day: str) -> None:
        """Switch to `day`: drop the map, re-subscribe for that date, reload."""
        with self._lock:
            if self._subscription is not None:
                self._subscription.close()
                self._subscription = None
            self._records = {}
            self._date = day
            self.has_unsaved_changes = False
            if self._feed is not None:
                self._subscription = self._feed.subscribe(self.kind.table, {"date": day})
        self.load_for_date(day)

    def load_for_date(self, day: str) -> bool:
        """Replace the map with the persisted records of `day`.

        Returns False when a newer load was issued meanwhile (the response is discarded).
        """
        with self._lock:
            seq = next(self._load_seq)
            self._latest_load = seq
            self._date = day

        try:
            rows = list(self._repo.list_for_date(day))
        except LoadError:
            logger.exception("%s load failed for %s; rendering empty", self.kind.table, day)
            rows = []

        with self._lock:
            if seq != self._latest_load:
                logger.debug("discarding stale %s load #%s for %s", self.kind.table, seq, day)
                return False
            self._records = {r.member_id: r for r in rows}
            return True

    def close(self) -> None:
        with self._lock:
            if self._subscription is not None:
                self._subscription.close()
                self._subscription = None

    # ----- local edits -----

    def _tag(self) -> str:
        request_id = self._request_ids()
        with self._lock:
            self._own_requests[request_id] = None
            while len(self._own_requests) > _MAX_TRACKED_REQUESTS:
                self._own_requests.popitem(last=False)
        return request_id

    def _is_own(self, request_id: Optional[str]) -> bool:
        return request_id is not None and request_id in self._own_requests

    def _require_date(self) -> str:
        if self._date is None:
            raise ValidationError("لم يتم اختيار تاريخ")
        return self._date

    def toggle_status(self, member_id: str, status: str, *, actor_id: Optional[str]) -> Record:
        """Optimistically set the status and persist this single record right away.

        On a failed write the entry is restored to its pre-toggle state and
        `WriteError` propagates.
        """
        status = self.kind.require_status(status)
        with self._lock:
            day = self._require_date()
            prev = self._records.get(member_id)
            updated = Record(
                member_id=member_id,
                status=status,
                notes=prev.notes if prev else "",
                actor_id=(prev.actor_id if prev and prev.actor_id else actor_id),
                created_at=prev.created_at if prev else None,
            )
            self._records[member_id] = updated

        payload = Record(
            member_id=member_id,
            status=status,
            notes=prev.notes if prev else "",
            actor_id=actor_id,
        )
        request_id = self._tag()
        try:
            self._repo.upsert(day, [payload], request_id=request_id)
        except WriteError:
            with self._lock:
                # Only roll back if nothing newer replaced our optimistic entry.
                if self._date == day and self._records.get(member_id) is updated:
                    if prev is None:
                        self._records.pop(member_id, None)
                    else:
                        self._records[member_id] = prev
            logger.warning("%s toggle failed for member %s on %s", self.kind.table, member_id, day)
            raise
        return updated

    def update_notes(self, member_id: str, text: str) -> Record:
        """Local only; persisted by the next `save_all`."""
        with self._lock:
            self._require_date()
            prev = self._records.get(member_id)
            updated = Record(
                member_id=member_id,
                status=prev.status if prev else self.kind.negative,
                notes=text or "",
                actor_id=prev.actor_id if prev else None,
                created_at=prev.created_at if prev else None,
            )
            self._records[member_id] = updated
            self.has_unsaved_changes = True
            return updated

    def remove_member(self, member_id: str) -> None:
        """Forget a student that disappeared from the roster."""
        with self._lock:
            self._records.pop(member_id, None)

    def _apply_bulk(self, new_map: dict[str, Record], member_ids: list[str]) -> int:
        if not member_ids:
            return 0
        with self._lock:
            self._require_date()
            self._records = new_map
            self.has_unsaved_changes = True
        return len(member_ids)

    def mark_all(self, member_ids: Iterable[str], status: str) -> int:
        status = self.kind.require_status(status)
        ids = list(member_ids)
        with self._lock:
            return self._apply_bulk(bulk.mark_all(self._records, ids, status), ids)

    def mark_remaining(self, member_ids: Iterable[str], status: str) -> int:
        status = self.kind.require_status(status)
        ids = list(member_ids)
        with self._lock:
            return self._apply_bulk(bulk.mark_remaining(self._records, ids, status), ids)

    def reset_filtered(self, member_ids: Iterable[str]) -> int:
        ids = list(member_ids)
        with self._lock:
            return self._apply_bulk(bulk.reset(self._records, ids), ids)

    # ----- explicit save -----

    def save_all(self, *, actor_id: Optional[str], confirmed: bool = False) -> int:
        """Upsert every entry of the map as one batch. Returns the number of rows written.

        Empty map: no-op. The caller must pass `confirmed=True` once the user
        accepted that the date's records get replaced. On failure the map is
        kept unchanged and `WriteError` propagates.
        """
        with self._lock:
            if not self._records:
                return 0
            day = self._require_date()
            if not actor_id:
                raise AuthenticationError("يجب تسجيل الدخول أولاً")
            if not confirmed:
                raise ConfirmationRequired(SAVE_CONFIRM_PROMPT)
            rows = [
                Record(
                    member_id=r.member_id,
                    status=r.status,
                    notes=r.notes,
                    actor_id=r.actor_id or actor_id,
                )
                for r in self._records.values()
            ]

        request_id = self._tag()
        try:
            self._repo.upsert(day, rows, request_id=request_id)
        except WriteError:
            logger.warning("%s batch save failed for %s (%s rows)", self.kind.table, day, len(rows))
            raise

        with self._lock:
            self.has_unsaved_changes = False
        logger.info("%s saved for %s (%s rows)", self.kind.table, day, len(rows))
        return len(rows)

    # ----- pushed changes -----

    def apply(self, event: ChangeEvent) -> Optional[Notice]:
        """Merge one pushed change. Returns a notice unless it is an echo of our own write."""
        if event.table != self.kind.table:
            return None
        row = event.row
        member_id = row.get("member_id")
        if member_id is None:
            return None
        member_id = str(member_id)

        with self._lock:
            if self._date is None or ("date" in row and str(row["date"])[:10] != self._date):
                return None
            own = self._is_own(event.request_id)

            if event.type == ChangeType.DELETE:
                self._records.pop(member_id, None)
                if own:
                    return None
                return Notice(self.kind.removed_message.format(name=self._member_name(member_id)))

            rec = Record.from_row(self.kind, row)
            self._records[member_id] = rec

        if own:
            return None
        who = self._user_name(rec.actor_id)
        return Notice(f"{self._member_name(member_id)}: {self.kind.label(rec.status)} — بواسطة {who}")

    def drain(self) -> list[Notice]:
        """Apply every queued event from the date subscription, in arrival order."""
        if self._subscription is None:
            return []
        notices = []
        for event in self._subscription.drain():
            notice = self.apply(event)
            if notice is not None:
                notices.append(notice)
        return notices
