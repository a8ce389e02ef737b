from __future__ import annotations

from contextlib import contextmanager
from datetime import time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

import mysql.connector

from ..core.exceptions import PersistenceError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True, commit: bool = True):
    """Open a connection and cursor wrapped in one transaction.

    The transaction commits when the block exits cleanly and ``commit`` is
    true; it rolls back otherwise (dry runs pass ``commit=False``). Driver
    errors surface as ``PersistenceError``.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise PersistenceError(f"Cannot connect to database: {exc}") from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            if commit:
                conn.commit()
            else:
                conn.rollback()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        conn.rollback()
        raise PersistenceError(str(exc)) from exc
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


def as_float(value: Any) -> Optional[float]:
    """DECIMAL columns come back as ``Decimal``; the domain works in floats."""

    if value is None:
        return None
    if isinstance(value, Decimal):
        return float(value)
    return float(value)


def normalize_mysql_time(value: Any) -> Optional[Union[time, str]]:
    """Normalize MySQL TIME values across connector implementations.

    mysql-connector can return TIME as:
    - datetime.time
    - datetime.timedelta
    - string (e.g. '08:30:00')

    Unparseable strings pass through unchanged; the duration calculator
    reports them as format errors.
    """

    if value is None:
        return None

    if isinstance(value, time):
        return value

    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds()) % 86400
        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        seconds = total_seconds % 60
        return time(hour=hours, minute=minutes, second=seconds)

    if isinstance(value, str):
        parts = value.strip().split(":")
        try:
            hours = int(parts[0])
            minutes = int(parts[1])
            seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
            return time(hour=hours, minute=minutes, second=seconds)
        except (IndexError, ValueError):
            return value

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")


@contextmanager
def borrowed_cursor(conn_factory: DatabaseConnection, cursor=None):
    """Reuse the cursor of an open unit of work, or run in a fresh transaction."""

    if cursor is not None:
        yield cursor
        return
    with db_cursor(conn_factory) as (_, cur):
        yield cur
