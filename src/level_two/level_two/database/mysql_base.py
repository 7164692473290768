from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def load_json_list(value: Any) -> Optional[list[str]]:
    """Decode a MySQL JSON array column.

    mysql-connector can return JSON as:
    - str (most versions)
    - bytes/bytearray
    - an already decoded list
    """

    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value) if value.strip() else None
    if value is None:
        return None
    if not isinstance(value, list):
        raise TypeError(f"Unsupported JSON list value: {value!r}")
    return [str(v) for v in value]


def dump_json_list(value: Optional[list[str]]) -> Optional[str]:
    if not value:
        return None
    return json.dumps(list(value), ensure_ascii=False)


@contextmanager
def store_errors(exc_type: type, message: str):
    """Translate driver errors into the domain error the callers handle."""
    try:
        yield
    except mysql.connector.Error as e:
        raise exc_type(message) from e
