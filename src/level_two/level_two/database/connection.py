from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import mysql.connector

# Student names, notes and servant names are Arabic; every connection and the
# database itself use the full 4-byte charset.
CHARSET = "utf8mb4"
COLLATION = "utf8mb4_unicode_ci"


@dataclass(frozen=True)
class DBConfig:
    """Connection target built from a settings module's `DB_CONFIG` dict."""

    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "level_two")),
        )

    def connect_kwargs(self, *, with_database: bool = True) -> dict:
        """Arguments for `mysql.connector.connect`.

        `with_database=False` is for bootstrap, which has to connect before
        the database exists.
        """
        kwargs = dict(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            charset=CHARSET,
            collation=COLLATION,
        )
        if with_database:
            kwargs["database"] = self.database
        return kwargs

    def describe(self) -> str:
        """user@host:port/database, safe for logs (no password)."""
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


class DatabaseConnection:
    """Process-wide connection factory shared by every MySQL repository.

    Each repository call opens a short-lived connection through `db_cursor`;
    nothing is pooled, which keeps Flask's threaded dev server safe.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    def connect(self):
        return mysql.connector.connect(**self._config.connect_kwargs())
