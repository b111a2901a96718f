"""ODBC connection helpers used by the direct-database backend."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, Generator, Iterable

import pyodbc

from .exceptions import ExecutionFailed

logger = logging.getLogger(__name__)


def get_connection(connection_string: str, timeout: float | None = None) -> pyodbc.Connection:
    """Open a database connection.

    Args:
        connection_string: ODBC connection string
        timeout: Login and query timeout in seconds

    Raises:
        ExecutionFailed: If the connection cannot be established
    """
    seconds = int(timeout) if timeout else 0
    try:
        conn = pyodbc.connect(connection_string, timeout=seconds, autocommit=False)
    except pyodbc.Error as e:
        logger.error(f"Failed to connect to database: {e}")
        raise ExecutionFailed(f"Failed to connect to database: {e}") from e
    if seconds:
        conn.timeout = seconds
    return conn


@contextmanager
def get_db_connection(
    connection_string: str,
    timeout: float | None = None,
) -> Generator[pyodbc.Connection, None, None]:
    """Context manager for database connections.

    Example:
        with get_db_connection(settings.db_connection_string) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
    """
    conn = get_connection(connection_string, timeout)
    try:
        yield conn
    finally:
        conn.close()


def _decode_value(value: Any) -> Any:
    """The read-only function returns json and the prompt is text; some drivers hand both back as bytes."""
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def fetch_value(
    connection_string: str,
    sql: str,
    params: Iterable[Any] | None = None,
    timeout: float | None = None,
    read_only: bool = False,
) -> Any:
    """Execute a statement and return the first column of the first row.

    With ``read_only`` the statement runs inside a read-only transaction that
    is always rolled back.

    Raises:
        ExecutionFailed: If the statement fails
    """
    logger.debug(f"Executing SQL (read_only={read_only}): {sql[:200]}...")

    try:
        with get_db_connection(connection_string, timeout) as conn:
            cursor = conn.cursor()
            try:
                if read_only:
                    cursor.execute("SET TRANSACTION READ ONLY")
                cursor.execute(sql, list(params or []))
                row = cursor.fetchone() if cursor.description else None
            finally:
                conn.rollback()
            return _decode_value(row[0]) if row else None

    except pyodbc.ProgrammingError as e:
        logger.error(f"SQL programming error: {e}")
        raise ExecutionFailed(f"Invalid SQL query: {e}") from e
    except pyodbc.DataError as e:
        logger.error(f"SQL data error: {e}")
        raise ExecutionFailed(f"Data error in query: {e}") from e
    except pyodbc.OperationalError as e:
        logger.error(f"Database operational error: {e}")
        raise ExecutionFailed(f"Database operation failed: {e}") from e
    except pyodbc.Error as e:
        logger.error(f"Database error: {e}")
        raise ExecutionFailed(f"Database error: {e}") from e


def execute_non_query(
    connection_string: str,
    sql: str,
    params: Iterable[Any] | None = None,
    timeout: float | None = None,
) -> int:
    """Execute a statement that doesn't return results and commit it.

    Returns:
        Number of rows affected

    Raises:
        ExecutionFailed: If the statement fails
    """
    logger.debug(f"Executing non-query: {sql[:200]}...")

    try:
        with get_db_connection(connection_string, timeout) as conn:
            cursor = conn.cursor()
            cursor.execute(sql, list(params or []))
            rowcount = cursor.rowcount
            conn.commit()

            logger.debug(f"Statement affected {rowcount} rows")
            return rowcount

    except pyodbc.Error as e:
        logger.error(f"Database error: {e}")
        raise ExecutionFailed(f"Database error: {e}") from e
