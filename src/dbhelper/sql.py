"""
SQL text primitives shared by the statement builders and dialect strategies.

This module provides:
- `Statement` - immutable SQL text + ordered parameters + record keys
- `ColumnRef` / `Modifier` - column identifiers and the `name.append` convention
- `Placeholders` - one counter object per statement that hands out
  positional markers (`$1, $2...` or `?`) in column order
- `resolve_alias()` - record key for a select projection
"""
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dbhelper.exceptions import ConfigError

__all__ = [
    'Verb',
    'Statement',
    'Modifier',
    'ColumnRef',
    'Placeholders',
    'NumberedPlaceholders',
    'QmarkPlaceholders',
    'resolve_alias',
    'APPEND_SUFFIX',
]

APPEND_SUFFIX = '.append'

# identifier after the last standalone AS keyword, optionally double-quoted
_ALIAS_REGEX = re.compile(r'\s+as\s+(?:"([^"]+)"|([A-Za-z_][A-Za-z0-9_$]*))\s*$', re.IGNORECASE)


class Verb(str, Enum):
    """Statement kinds produced by the builders."""
    SELECT = 'SELECT'
    UPDATE = 'UPDATE'
    INSERT = 'INSERT'
    DELETE = 'DELETE'


@dataclass(frozen=True, slots=True)
class Statement:
    """A built statement. Never mutated after construction.

    `placeholders` is the number of column-derived placeholders; condition
    placeholders supplied by the caller follow them. `columns` holds the
    record keys for select statements and is empty for writes.
    """
    verb: Verb
    sql: str
    parameters: tuple[Any, ...] = ()
    columns: tuple[str, ...] = ()
    placeholders: int = 0

    def bind(self, parameters: Iterable[Any]) -> 'Statement':
        """Return a copy carrying `parameters`."""
        return Statement(self.verb, self.sql, tuple(parameters), self.columns,
                         self.placeholders)


class Modifier(str, Enum):
    """Mutation mode of a column in an update statement."""
    PLAIN = 'plain'
    ARRAY_APPEND = 'arrayAppend'


@dataclass(frozen=True, slots=True)
class ColumnRef:
    """Column identifier with an optional mutation modifier.

    >>> ColumnRef.parse('tags.append')
    ColumnRef(name='tags', modifier=<Modifier.ARRAY_APPEND: 'arrayAppend'>)
    >>> ColumnRef.parse('name')
    ColumnRef(name='name', modifier=<Modifier.PLAIN: 'plain'>)
    """
    name: str
    modifier: Modifier = field(default=Modifier.PLAIN)

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ConfigError(f'Column name must be non-empty: {self.name!r}')

    @classmethod
    def parse(cls, column: 'str | ColumnRef') -> 'ColumnRef':
        """Parse `name` or `name.append` into a ColumnRef.
        """
        if isinstance(column, ColumnRef):
            return column
        if not isinstance(column, str):
            raise ConfigError(f'Column must be a string, got {type(column).__name__}')
        if column.endswith(APPEND_SUFFIX):
            return cls(column[:-len(APPEND_SUFFIX)], Modifier.ARRAY_APPEND)
        return cls(column)

    @property
    def is_array_append(self) -> bool:
        return self.modifier is Modifier.ARRAY_APPEND

    def __str__(self) -> str:
        return self.name


def column_text(column: 'str | ColumnRef') -> str:
    """Verbatim column text for statements the modifier does not apply to.
    """
    if isinstance(column, ColumnRef):
        return column.name
    if not isinstance(column, str) or not column.strip():
        raise ConfigError(f'Column name must be non-empty: {column!r}')
    return column


def require_columns(columns: Sequence[Any] | None, verb: Verb) -> list:
    """Raise ConfigError when no columns are given."""
    if not columns:
        raise ConfigError(f'No columns given for {verb.value.lower()} statement: {columns!r}')
    if isinstance(columns, str):
        raise ConfigError(f'Columns must be a sequence of names, got string {columns!r}')
    return list(columns)


class Placeholders:
    """Positional marker counter for a single statement.

    Every call to `next()` consumes the next 1-based index. Builders own one
    counter per statement so index arithmetic has a single implementation.
    """

    def __init__(self) -> None:
        self.count = 0

    def next(self) -> str:
        self.count += 1
        return self.render(self.count)

    def take(self, n: int) -> list[str]:
        return [self.next() for _ in range(n)]

    def render(self, index: int) -> str:
        raise NotImplementedError


class NumberedPlaceholders(Placeholders):
    """PostgreSQL native markers: `$1, $2, ...`."""

    def render(self, index: int) -> str:
        return f'${index}'


class QmarkPlaceholders(Placeholders):
    """qmark markers: `?` for every index, order carries the position."""

    def render(self, index: int) -> str:
        return '?'


def resolve_alias(column: 'str | ColumnRef') -> str:
    """Record key for a select projection.

    The key is the identifier following the last standalone `AS` keyword
    (case-insensitive, double quotes removed). Without an alias the raw
    column text is the key.

    >>> resolve_alias('count(*) AS total')
    'total'
    >>> resolve_alias('u.name as "User Name"')
    'User Name'
    >>> resolve_alias('users.id')
    'users.id'
    >>> resolve_alias('alias_count')
    'alias_count'
    """
    text = column_text(column).strip()
    match = _ALIAS_REGEX.search(text)
    if match is None:
        return text
    return match.group(1) or match.group(2)
