from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from typing import Any, Mapping, Optional

from ..core.enums import ChangeType
from .events import ChangeEvent

logger = logging.getLogger(__name__)


class Subscription:
    """A queue of change events for one (table, filter) pair.

    Events are appended by the publishing thread and drained by the single
    reducer that owns the subscription.
    """

    def __init__(self, feed: "ChangeFeed", sub_id: int, table: str, filters: Optional[Mapping[str, Any]]):
        self._feed = feed
        self.sub_id = sub_id
        self.table = table
        self.filters = dict(filters or {})
        self._queue: deque[ChangeEvent] = deque()
        self._lock = threading.Lock()
        self._closed = False

    def offer(self, event: ChangeEvent) -> None:
        with self._lock:
            if not self._closed:
                self._queue.append(event)

    def drain(self) -> list[ChangeEvent]:
        with self._lock:
            events = list(self._queue)
            self._queue.clear()
        return events

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.clear()
        self._feed._remove(self.sub_id)


class ChangeFeed:
    """In-process push channel: writers publish, subscriptions receive matching events."""

    def __init__(self):
        self._subs: dict[int, Subscription] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._seq = itertools.count(1)

    def subscribe(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> Subscription:
        with self._lock:
            sub = Subscription(self, next(self._ids), table, filters)
            self._subs[sub.sub_id] = sub
        logger.debug("subscribed #%s to %s %s", sub.sub_id, table, sub.filters)
        return sub

    def _remove(self, sub_id: int) -> None:
        with self._lock:
            self._subs.pop(sub_id, None)
        logger.debug("unsubscribed #%s", sub_id)

    @property
    def subscription_count(self) -> int:
        return len(self._subs)

    def publish(
        self,
        table: str,
        change_type: ChangeType,
        *,
        new: Optional[Mapping[str, Any]] = None,
        old: Optional[Mapping[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> ChangeEvent:
        event = ChangeEvent(
            table=table,
            type=change_type,
            new=dict(new) if new is not None else None,
            old=dict(old) if old is not None else None,
            request_id=request_id,
            seq=next(self._seq),
        )
        with self._lock:
            targets = [s for s in self._subs.values() if event.matches(s.table, s.filters)]
        for sub in targets:
            sub.offer(event)
        return event
