"""
Generic table access for PostgreSQL and SQLite.

All operations can be called either as:
- Module functions: db.select(pool, columns, table, condition, *params)
- Pool methods: pool.select(columns, table, condition, *params)

The module functions are facades over the Pool methods.
"""
__version__ = '0.1.0'

from typing import Any

from dbhelper.builder import build_delete, build_insert, build_select
from dbhelper.builder import build_update
from dbhelper.cancel import CancelToken
from dbhelper.connection import Pool, close, connect
from dbhelper.exceptions import ConfigError, ConnectionFailure, DatabaseError
from dbhelper.exceptions import OperationCancelled, QueryError, ScanError
from dbhelper.options import DatabaseOptions
from dbhelper.row import ResultRecord, ResultSet
from dbhelper.sql import ColumnRef, Modifier, Statement
from dbhelper.types import ValueKind


def select(pool: Pool, columns: list, table: str, condition: str = '', *params: Any,
           cancel: CancelToken | None = None) -> ResultSet:
    """Select columns from a table and return the decoded rows.

    Example:
        db.select(pool, ['id', 'name AS username'], 'users',
                  'WHERE email = $1', 'a@example.com')
    """
    return pool.select(columns, table, condition, *params, cancel=cancel)


def update(pool: Pool, table: str, columns: list, condition: str = '', *params: Any,
           cancel: CancelToken | None = None) -> int:
    """Update columns and return the rows affected.

    Condition placeholders continue after the columns: with three columns
    the condition starts at $4. A `name.append` column appends its value
    to an array column.
    """
    return pool.update(table, columns, condition, *params, cancel=cancel)


def insert(pool: Pool, table: str, columns: list, primary_key: str, *params: Any,
           cancel: CancelToken | None = None) -> Any:
    """Insert one row and return its primary key.
    """
    return pool.insert(table, columns, primary_key, *params, cancel=cancel)


def delete(pool: Pool, table: str, columns: list, *params: Any,
           cancel: CancelToken | None = None) -> int:
    """Delete rows matching every column value and return the rows affected.
    """
    return pool.delete(table, columns, *params, cancel=cancel)


__all__ = [
    'connect',
    'close',
    'Pool',
    'DatabaseOptions',
    'CancelToken',
    'select',
    'update',
    'insert',
    'delete',
    'build_select',
    'build_update',
    'build_insert',
    'build_delete',
    'Statement',
    'ColumnRef',
    'Modifier',
    'ResultRecord',
    'ResultSet',
    'ValueKind',
    'DatabaseError',
    'ConfigError',
    'ConnectionFailure',
    'QueryError',
    'ScanError',
    'OperationCancelled',
]
