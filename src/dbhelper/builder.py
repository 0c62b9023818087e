"""
Statement generation for select, update, insert and delete.

All functions are pure: they take column identifiers, a table name and a raw
condition fragment and return a `Statement`. Placeholder indices come from a
single counter per statement, so for `n` columns the indices used are exactly
`1..n`, in column order. Condition fragments are appended verbatim; their own
placeholders must continue at `n + 1` (caller contract, not re-validated).
"""
import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import Any

from dbhelper.exceptions import ConfigError
from dbhelper.sql import ColumnRef, Statement, Verb, column_text
from dbhelper.sql import require_columns, resolve_alias
from dbhelper.strategy import DatabaseStrategy, get_strategy

logger = logging.getLogger(__name__)

__all__ = [
    'build_select',
    'build_update',
    'build_insert',
    'build_delete',
]

Columns = Sequence['str | ColumnRef']


def _tail(condition: str | None) -> str:
    condition = (condition or '').strip()
    return f' {condition}' if condition else ''


def build_select(columns: Columns, table: str, condition: str | None = '',
                 params: Iterable[Any] = (),
                 dialect: 'str | DatabaseStrategy' = 'postgresql') -> Statement:
    """Generate a SELECT statement.

    `Statement.columns` holds the record keys: the alias after `AS` when
    present, the raw column text otherwise. Duplicate keys are kept; the
    decoder then keeps the last value per row.

    >>> build_select(['id', 'count(*) AS total'], 'users', 'WHERE id = $1').sql
    'SELECT id, count(*) AS total FROM users WHERE id = $1'
    """
    columns = [column_text(c) for c in require_columns(columns, Verb.SELECT)]
    get_strategy(dialect)  # unknown dialects fail here too
    keys = tuple(resolve_alias(c) for c in columns)

    duplicates = [k for k, n in Counter(keys).items() if n > 1]
    if duplicates:
        logger.warning(f'Duplicate record keys {duplicates} in select on {table}; '
                       'the last column wins')

    sql = f"SELECT {', '.join(columns)} FROM {table}{_tail(condition)}"
    return Statement(Verb.SELECT, sql, tuple(params), keys, 0)


def build_update(columns: Columns, table: str, condition: str | None = '',
                 params: Iterable[Any] = (),
                 dialect: 'str | DatabaseStrategy' = 'postgresql') -> Statement:
    """Generate an UPDATE statement.

    Column `i` is assigned placeholder `i`. A column carrying the
    array-append modifier (`tags.append`) appends to the array instead of
    overwriting it; its placeholder index is unchanged.

    >>> build_update(['name', 'tags.append'], 'users', 'WHERE id = $3').sql
    'UPDATE users SET name = $1, tags = array_append(tags, $2) WHERE id = $3'
    """
    refs = [ColumnRef.parse(c) for c in require_columns(columns, Verb.UPDATE)]
    strategy = get_strategy(dialect)
    marks = strategy.placeholders()

    assignments = []
    for ref in refs:
        placeholder = marks.next()
        if ref.is_array_append:
            assignments.append(strategy.array_append(ref.name, placeholder))
        else:
            assignments.append(f'{ref.name} = {placeholder}')

    sql = f"UPDATE {table} SET {', '.join(assignments)}{_tail(condition)}"
    return Statement(Verb.UPDATE, sql, tuple(params), (), marks.count)


def build_insert(columns: Columns, table: str, primary_key: str,
                 params: Iterable[Any] = (),
                 dialect: 'str | DatabaseStrategy' = 'postgresql') -> Statement:
    """Generate an INSERT statement returning the primary key.

    >>> build_insert(['name', 'email'], 'users', 'id').sql
    'INSERT INTO users (name, email) VALUES ($1, $2) RETURNING id'
    """
    columns = [column_text(c) for c in require_columns(columns, Verb.INSERT)]
    if not primary_key or not primary_key.strip():
        raise ConfigError(f'No primary key column given for insert into {table}')
    marks = get_strategy(dialect).placeholders()
    values = marks.take(len(columns))

    sql = (f"INSERT INTO {table} ({', '.join(columns)}) "
           f"VALUES ({', '.join(values)}) RETURNING {primary_key}")
    return Statement(Verb.INSERT, sql, tuple(params), (), marks.count)


def build_delete(columns: Columns, table: str, params: Iterable[Any] = (),
                 dialect: 'str | DatabaseStrategy' = 'postgresql') -> Statement:
    """Generate a DELETE statement with one conjunctive predicate per column.

    >>> build_delete(['user_id', 'tenant_id'], 'users').sql
    'DELETE FROM users WHERE user_id = $1 AND tenant_id = $2'
    """
    columns = [column_text(c) for c in require_columns(columns, Verb.DELETE)]
    marks = get_strategy(dialect).placeholders()
    predicates = [f'{column} = {marks.next()}' for column in columns]

    sql = f"DELETE FROM {table} WHERE {' AND '.join(predicates)}"
    return Statement(Verb.DELETE, sql, tuple(params), (), marks.count)
