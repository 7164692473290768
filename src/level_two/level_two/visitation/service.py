from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional, Sequence

from ..common.text import name_key
from ..core.constants import MAX_SERVANT_SECTIONS, UNASSIGNED_GROUP
from ..core.enums import ChangeType, Role
from ..core.exceptions import AuthorizationError, LoadError, ValidationError
from ..members.model import Member
from ..members.repository import MemberRepository
from ..realtime.events import ChangeEvent
from ..users.repository import UserRepository
from .repository import AssignmentRepository

logger = logging.getLogger(__name__)

UNASSIGNED_TITLE = "طلاب غير موزعين"


@dataclass(frozen=True)
class ServantSection:
    servant_id: Optional[str]
    title: str
    members: list[Member] = field(default_factory=list)

    @property
    def unassigned(self) -> bool:
        return self.servant_id is None


def group_by_servant(
    members: Iterable[Member],
    assignments: Mapping[str, Optional[str]],
    servant_order: Sequence[str],
    servant_name: Callable[[str], str],
) -> list[ServantSection]:
    """Partition students by assigned servant.

    Sections come in users-list order for the first four servants, then any
    other assigned servant, then the unassigned group. Each section is sorted
    by name.
    """

    groups: dict[str, list[Member]] = {}
    for m in members:
        groups.setdefault(assignments.get(m.id) or UNASSIGNED_GROUP, []).append(m)
    for arr in groups.values():
        arr.sort(key=lambda m: name_key(m.name))

    assigned = [sid for sid in groups if sid != UNASSIGNED_GROUP]
    preferred = [sid for sid in servant_order if sid in groups and sid != UNASSIGNED_GROUP][:MAX_SERVANT_SECTIONS]
    ordered = preferred + [sid for sid in assigned if sid not in preferred]

    sections = [ServantSection(sid, servant_name(sid), groups[sid]) for sid in ordered]
    if UNASSIGNED_GROUP in groups:
        sections.append(ServantSection(None, UNASSIGNED_TITLE, groups[UNASSIGNED_GROUP]))
    return sections


class AssignmentCache:
    """member_id -> servant_id, kept in sync by load + `member_assignments` change events."""

    table = "member_assignments"

    def __init__(self, repo: AssignmentRepository):
        self._repo = repo
        self._map: dict[str, Optional[str]] = {}

    def load(self) -> dict[str, Optional[str]]:
        try:
            self._map = dict(self._repo.list_all())
        except LoadError:
            logger.exception("assignments load failed")
            self._map = {}
        return dict(self._map)

    @property
    def mapping(self) -> dict[str, Optional[str]]:
        return dict(self._map)

    def forget(self, member_id: str) -> None:
        self._map.pop(member_id, None)

    def apply(self, event: ChangeEvent) -> None:
        row = event.row
        member_id = row.get("member_id")
        if event.table != self.table or member_id is None:
            return
        if event.type == ChangeType.DELETE:
            self._map.pop(str(member_id), None)
        else:
            self._map[str(member_id)] = row.get("servant_id")


class AssignmentService:
    """Use case: distribute students across servants (admin)."""

    def __init__(self, assignments: AssignmentRepository, members: MemberRepository, users: UserRepository):
        self._assignments = assignments
        self._members = members
        self._users = users

    def distribute_round_robin(self, *, current_role: Role, max_servants: int = MAX_SERVANT_SECTIONS) -> int:
        """Assign every student (sorted by name) to the first `max_servants` servants in turn."""
        if current_role != Role.ADMIN:
            raise AuthorizationError("فشل توزيع الطلاب. تأكد من امتلاك صلاحيات الادمن")

        servant_ids = [u.id for u in self._users.list_by_role(Role.SERVANT)][:max_servants]
        if not servant_ids:
            raise ValidationError("لا يوجد خدام للتوزيع")

        members = sorted(self._members.list_all(), key=lambda m: name_key(m.name))
        rows = [(m.id, servant_ids[idx % len(servant_ids)]) for idx, m in enumerate(members)]
        self._assignments.upsert_many(rows)
        logger.info("distributed %s students across %s servants", len(rows), len(servant_ids))
        return len(rows)
