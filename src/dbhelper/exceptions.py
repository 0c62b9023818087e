"""
Database-specific exception classes.
"""
import re
import sqlite3
from collections.abc import Sequence
from typing import Any

import psycopg
import sqlalchemy.exc

RETRYABLE_PATTERNS = [
    # SSL/TLS errors
    r'ssl',
    r'tls',
    # Connection drops
    r'connection.*(closed|reset|refused|lost|terminated|broken)',
    r'server closed',
    r'eof detected',
    r'broken pipe',
    r'connection reset',
    # Timeouts
    r'timeout',
    r'timed out',
    # Network issues
    r'could not connect',
    r'no route to host',
    r'network.*(unreachable|error)',
    r'host.*(unreachable|down)',
    # Database unavailable
    r'database.*unavailable',
    r'too many connections',
    r'connection pool',
]

_RETRYABLE_REGEX = re.compile('|'.join(RETRYABLE_PATTERNS), re.IGNORECASE)


def is_retryable_error(exc: BaseException) -> bool:
    """Check if an exception represents a transient error worth retrying.

    Returns True for errors that are likely transient and may succeed on retry:
    - SSL/TLS errors
    - Connection drops/resets
    - Timeouts
    - Network issues
    - Database temporarily unavailable

    Returns False for syntax errors, type mismatches, constraint violations
    and cancelled statements. The library itself never retries; this only
    helps callers implement their own policy.

    :param exc: The exception to check.
    :returns: True if the error is likely transient and worth retrying.
    """
    if isinstance(exc, OperationCancelled):
        return False
    error_msg = str(exc).lower()
    return bool(_RETRYABLE_REGEX.search(error_msg))


class DatabaseError(Exception):
    """Base class for all dbhelper errors.
    """


class ConfigError(DatabaseError):
    """Invalid statement input, detected before any network call.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing the pool or probing the server version.
    """


class OperationCancelled(DatabaseError):
    """A round trip was aborted by its cancel token or deadline.
    """


class QueryError(DatabaseError):
    """The driver rejected a statement or failed while running it.

    Carries the statement text, the parameters it was sent with and the
    underlying cause.
    """

    def __init__(self, sql: str, parameters: Sequence[Any], cause: BaseException) -> None:
        self.sql = sql
        self.parameters = tuple(parameters)
        self.cause = cause
        super().__init__(
            f'Query failed: sql {sql!r}, parameters {self.parameters!r}, error {cause}')

    @property
    def cancelled(self) -> bool:
        return isinstance(self.cause, OperationCancelled)

    @property
    def retryable(self) -> bool:
        return is_retryable_error(self.cause)


class ScanError(DatabaseError):
    """The query ran but a result row could not be decoded.
    """

    def __init__(self, cause: BaseException | str) -> None:
        self.cause = cause
        super().__init__(f'Failed to scan rows: {cause}')


DriverError = (
    psycopg.Error,
    sqlite3.Error,
    sqlalchemy.exc.SQLAlchemyError,
)