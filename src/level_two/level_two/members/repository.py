from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Member, NewMember


class MemberRepository(Protocol):
    """Repository interface for the `members` table.

    Writes publish INSERT/UPDATE/DELETE events on the change feed.
    """

    def list_all(self) -> Sequence[Member]:
        raise NotImplementedError

    def get_by_id(self, member_id: str) -> Optional[Member]:
        raise NotImplementedError

    def create_many(self, members: Sequence[NewMember]) -> Sequence[Member]:
        raise NotImplementedError

    def update(self, member: Member) -> bool:
        raise NotImplementedError

    def delete_by_id(self, member_id: str) -> bool:
        raise NotImplementedError
