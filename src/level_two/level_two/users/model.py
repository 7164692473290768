from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a servant account.

    Note: plain data object, no DB access here.
    """

    id: str
    name: str
    email: str
    password_hash: str
    role: Role
    created_at: Optional[datetime] = None
