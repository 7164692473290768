from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): services depend on this interface, not on a concrete DB.
    """

    def get_by_id(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def list_all(self) -> Sequence[User]:
        """Newest first."""
        raise NotImplementedError

    def list_by_role(self, role: Role) -> Sequence[User]:
        """Oldest first, so the first servants created keep their place."""
        raise NotImplementedError

    def create_user(self, *, name: str, email: str, password_hash: str, role: Role) -> str:
        raise NotImplementedError

    def delete_by_id(self, user_id: str) -> bool:
        raise NotImplementedError
