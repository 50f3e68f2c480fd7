from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import mysql.connector

from .errors import StoreError, TransactionConflictError

# ER_LOCK_DEADLOCK: InnoDB rolled the transaction back.
DEADLOCK_ERRNO = 1213


@contextmanager
def db_cursor(conn_factory, *, dictionary: bool = True):
    """One connection, one transaction: commit on success, rollback on error."""
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise StoreError(f"Database unavailable: {exc}") from exc
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        conn.rollback()
        if getattr(exc, "errno", None) == DEADLOCK_ERRNO:
            raise TransactionConflictError(str(exc)) from exc
        raise StoreError(str(exc)) from exc
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


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_document(doc: dict) -> str:
    return json.dumps(doc, default=_json_default, ensure_ascii=False)


def decode_document(value: Any) -> dict:
    """Normalize JSON column values across connector implementations.

    mysql-connector can return JSON as str, bytes or bytearray.
    """
    if value is None:
        return {}
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    if isinstance(value, dict):
        return value
    raise TypeError(f"Unsupported JSON column value type: {type(value)!r}")


def json_path(path: str) -> str:
    """Dotted field path -> MySQL JSON path: "history.01" -> '$."history"."01"'."""
    return "$" + "".join(f'."{part}"' for part in path.split("."))
