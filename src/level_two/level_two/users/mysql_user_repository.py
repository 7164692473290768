from __future__ import annotations

import uuid
from typing import Optional, Sequence

from ..core.enums import Role
from ..core.exceptions import LoadError, WriteError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, store_errors
from .model import User
from .repository import UserRepository

_COLUMNS = "id, name, email, password_hash, role, created_at"


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_user(row: dict) -> User:
        return User(
            id=str(row["id"]),
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=Role(row["role"]),
            created_at=row.get("created_at"),
        )

    def _one(self, where: str, value: str) -> Optional[User]:
        with store_errors(LoadError, "تعذر تحميل المستخدم"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(f"SELECT {_COLUMNS} FROM users WHERE {where}=%s", (value,))
                row = fetchone(cur)
                return self._to_user(row) if row else None

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self._one("id", user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self._one("email", email)

    def list_all(self) -> Sequence[User]:
        with store_errors(LoadError, "تعذر تحميل المستخدمين"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(f"SELECT {_COLUMNS} FROM users ORDER BY created_at DESC")
                return [self._to_user(r) for r in fetchall(cur)]

    def list_by_role(self, role: Role) -> Sequence[User]:
        with store_errors(LoadError, "تعذر تحميل المستخدمين"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"SELECT {_COLUMNS} FROM users WHERE role=%s ORDER BY created_at, name",
                    (role.value,),
                )
                return [self._to_user(r) for r in fetchall(cur)]

    def create_user(self, *, name: str, email: str, password_hash: str, role: Role) -> str:
        user_id = str(uuid.uuid4())
        with store_errors(WriteError, "فشل إضافة المستخدم"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO users(id, name, email, password_hash, role)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (user_id, name, email, password_hash, role.value),
                )
        return user_id

    def delete_by_id(self, user_id: str) -> bool:
        with store_errors(WriteError, "فشل حذف المستخدم"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("DELETE FROM users WHERE id=%s", (user_id,))
                return cur.rowcount > 0
