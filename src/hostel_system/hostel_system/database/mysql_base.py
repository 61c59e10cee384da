from __future__ import annotations

from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Dict, List, Optional

from mysql.connector import errorcode, errors

from ..core.exceptions import StorageUnavailableError
from .connection import DatabaseConnection

_TRANSIENT_ERRNOS = {errorcode.ER_LOCK_DEADLOCK, errorcode.ER_LOCK_WAIT_TIMEOUT}


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (errors.OperationalError, errors.InterfaceError)):
        return True
    return getattr(exc, "errno", None) in _TRANSIENT_ERRNOS


def is_duplicate_key(exc: BaseException) -> bool:
    return isinstance(exc, errors.IntegrityError) and exc.errno == errorcode.ER_DUP_ENTRY


@contextmanager
def _connection_scope(conn_factory: DatabaseConnection, *, dictionary: bool, transactional: bool):
    conn = conn_factory.connect()
    try:
        if transactional:
            conn.start_transaction()
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except errors.Error as exc:
        if is_transient(exc):
            # The server already dropped the transaction.
            raise StorageUnavailableError(str(exc)) from exc
        conn.rollback()
        raise
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    with _connection_scope(conn_factory, dictionary=dictionary, transactional=False) as scope:
        yield scope


@contextmanager
def db_transaction(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Explicit transaction: commit on success, rollback on any error.

    Use with ``SELECT ... FOR UPDATE`` for check-then-write sequences.
    """

    with _connection_scope(conn_factory, dictionary=dictionary, transactional=True) as scope:
        yield scope


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Normalize MySQL TIME values across connector implementations.

    mysql-connector can return TIME as:
    - datetime.time
    - datetime.timedelta
    - string (e.g. '08:30:00')
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
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
        return time(hour=hours, minute=minutes, second=seconds)

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
