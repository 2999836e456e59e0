from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..common.deadline import Deadline
from ..core.exceptions import ConversionError, OperationCancelledError, StorageError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

# Driver errors that mean "we ran out of time", not "the store is broken".
_TIMEOUT_ERRNOS = {
    errorcode.ER_LOCK_WAIT_TIMEOUT,
    errorcode.ER_QUERY_INTERRUPTED,
    3024,  # ER_QUERY_TIMEOUT (max_execution_time exceeded)
}


def _apply_deadline(cur, deadline: Deadline) -> None:
    deadline.check()
    seconds = deadline.remaining_whole_seconds()
    if seconds is None:
        return
    cur.execute(f"SET SESSION innodb_lock_wait_timeout = {int(seconds)}")
    cur.execute(f"SET SESSION max_execution_time = {int(seconds) * 1000}")


def _translate(error: mysql.connector.Error, deadline: Optional[Deadline]) -> StorageError:
    if deadline is not None and getattr(error, "errno", None) in _TIMEOUT_ERRNOS:
        return OperationCancelledError(f"Deadline exceeded while waiting on the database: {error}")
    return StorageError(f"Database error: {error}")


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True, deadline: Optional[Deadline] = None):
    """One connection, one transaction.

    Commits when the block exits normally. Any exception (driver error,
    cancelled deadline, bug in the block) rolls the whole transaction back.
    Driver errors leave as StorageError / OperationCancelledError.
    """
    if deadline is not None:
        deadline.check()
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        raise _translate(e, deadline) from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            if deadline is not None:
                _apply_deadline(cur, deadline)
            yield conn, cur
            if deadline is not None:
                deadline.check()
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        _safe_rollback(conn)
        raise _translate(e, deadline) from e
    except BaseException:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error:
        # The connection is already broken; the server discards the transaction.
        logger.warning("Rollback failed on a broken connection", exc_info=True)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def row_uuid(row: Dict[str, Any], column: str) -> uuid.UUID:
    """Read a CHAR(36) id column; a missing or malformed value is a ConversionError."""
    try:
        value = row[column]
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("ascii")
        return uuid.UUID(str(value))
    except (KeyError, ValueError, TypeError, UnicodeDecodeError) as e:
        raise ConversionError(f"Column {column!r} does not hold a UUID: {row.get(column)!r}") from e


def row_value(row: Dict[str, Any], column: str) -> Any:
    try:
        return row[column]
    except KeyError as e:
        raise ConversionError(f"Missing column {column!r} in result row") from e
