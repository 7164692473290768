from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    ADMIN = "admin"
    SERVANT = "servant"


class AttendanceStatus(str, Enum):
    """Meeting attendance status stored in the attendance table."""

    PRESENT = "present"
    ABSENT = "absent"


class VisitStatus(str, Enum):
    """Pastoral visitation status stored in the visits table."""

    VISITED = "visited"
    NOT_VISITED = "not_visited"


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
