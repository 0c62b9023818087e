"""
Connection pool handling with SQLAlchemy.

This module provides:
1. The `connect()` function creating a pool and probing the server version
2. The `Pool` class wrapping a SQLAlchemy engine with the table operations
3. `close()` and an exit hook disposing every pool still open

The Pool is the primary client, providing:
- select(columns, table, condition, *params) - rows as a ResultSet
- update(table, columns, condition, *params) - rows affected
- insert(table, columns, primary_key, *params) - inserted key
- delete(table, columns, *params) - rows affected
"""
import atexit
import logging
import threading
import weakref
from collections.abc import Mapping
from typing import Any, Self

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from dbhelper.builder import build_delete, build_insert, build_select
from dbhelper.builder import build_update
from dbhelper.cancel import CancelToken
from dbhelper.exceptions import ConfigError, ConnectionFailure, QueryError
from dbhelper.exceptions import ScanError
from dbhelper.cursor import Executor
from dbhelper.options import DatabaseOptions
from dbhelper.row import ResultSet, decode
from dbhelper.sql import Statement, Verb
from dbhelper.strategy import get_strategy

__all__ = [
    'Pool',
    'connect',
    'close',
    'dispose_all_pools',
]

logger = logging.getLogger(__name__)

_open_pools: 'weakref.WeakSet[Pool]' = weakref.WeakSet()
_open_pools_lock = threading.RLock()


def _check_arity(statement: Statement, supplied: int, exact: bool) -> None:
    """Raise ConfigError when parameters cannot cover the column placeholders.
    """
    needed = statement.placeholders
    if supplied < needed or (exact and supplied != needed):
        expected = f'{needed}' if exact else f'at least {needed}'
        raise ConfigError(f'{statement.verb.value} expects {expected} parameters, '
                          f'got {supplied}')


class Pool:
    """Wraps a SQLAlchemy engine and its connection pool.

    This class:
    1. Checks out one pooled connection per call and returns it afterwards
    2. Tracks query execution counts and timing
    3. Supports the context manager protocol, closing the pool on exit

    The engine pool is safe for concurrent use; the Pool adds no locking
    or ordering of its own.
    """

    def __init__(self, engine: Engine, options: DatabaseOptions) -> None:
        self.engine = engine
        self.options = options
        self.strategy = get_strategy(options.drivername)
        self.executor = Executor(self, self.strategy)
        self.calls = 0
        self.time = 0
        self.closed = False
        self._stats_lock = threading.Lock()
        with _open_pools_lock:
            _open_pools.add(self)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __repr__(self) -> str:
        state = 'closed' if self.closed else 'open'
        return f'<Pool {self.dialect} {self.engine.url!r} {state}>'

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql' or 'sqlite')."""
        return self.strategy.dialect_name

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        with self._stats_lock:
            self.time += elapsed
            self.calls += 1

    def checkout(self) -> Any:
        """Check out a pooled DBAPI connection; closing it returns it to the pool.
        """
        if self.closed:
            raise ConnectionFailure('Pool is closed')
        return self.engine.raw_connection()

    def close(self) -> None:
        """Dispose the engine and its connections. Safe to call twice.
        """
        if self.closed:
            return
        self.closed = True
        self.engine.dispose()
        with _open_pools_lock:
            _open_pools.discard(self)
        logger.debug(f'Pool closed: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1,self.calls):.3f}s per query)')

    def server_version(self, cancel: CancelToken | None = None) -> str:
        """Return the server version text.
        """
        statement = Statement(Verb.SELECT, self.strategy.version_query, (), ('version',))
        stream = self.executor.fetch_rows(statement, cancel)
        result = decode(stream, statement.columns, self.strategy)
        if len(result) != 1:
            raise ScanError(f'Expected one version row, got {len(result)}')
        return str(result[0]['version'])

    def select(self, columns: list, table: str, condition: str = '', *params: Any,
               cancel: CancelToken | None = None) -> ResultSet:
        """Select `columns` from `table` and decode the rows.

        The condition fragment's placeholders start at $1; select emits no
        column placeholders.
        """
        statement = build_select(columns, table, condition, params, self.strategy)
        stream = self.executor.fetch_rows(statement, cancel)
        return decode(stream, statement.columns, self.strategy)

    def update(self, table: str, columns: list, condition: str = '', *params: Any,
               cancel: CancelToken | None = None) -> int:
        """Update `columns` of the rows matching `condition`.

        Parameters are the column values in order, then the condition values.
        A condition with 3 columns starts its placeholders at $4.
        """
        statement = build_update(columns, table, condition, params, self.strategy)
        _check_arity(statement, len(params), exact=False)
        return self.executor.exec_write(statement, cancel)

    def insert(self, table: str, columns: list, primary_key: str, *params: Any,
               cancel: CancelToken | None = None) -> Any:
        """Insert one row and return its primary key.
        """
        statement = build_insert(columns, table, primary_key, params, self.strategy)
        _check_arity(statement, len(params), exact=True)
        return self.executor.exec_insert_returning_id(statement, cancel)

    def delete(self, table: str, columns: list, *params: Any,
               cancel: CancelToken | None = None) -> int:
        """Delete the rows where every column equals its parameter.
        """
        statement = build_delete(columns, table, params, self.strategy)
        _check_arity(statement, len(params), exact=True)
        return self.executor.exec_write(statement, cancel)


def connect(source: str | Mapping[str, Any] | DatabaseOptions,
            **overrides: Any) -> tuple[Pool, str]:
    """Create a connection pool and probe the server version.

    `source` is a database URL, a mapping of DatabaseOptions fields or a
    DatabaseOptions instance; keyword arguments override its fields.

    Raises
        ConnectionFailure: if the pool cannot be created, the server cannot
        be reached or the version probe fails
    """
    try:
        options = DatabaseOptions.load(source, **overrides)
    except (ValueError, TypeError) as e:
        raise ConnectionFailure(f'Invalid connection options: {e}') from e

    strategy = get_strategy(options.drivername)
    try:
        engine = sa.create_engine(strategy.build_connection_url(options),
                                  **strategy.get_engine_kwargs(options))
    except (sa.exc.ArgumentError, ImportError) as e:
        raise ConnectionFailure(f'Unable to create engine: {e}') from e

    pool = Pool(engine, options)
    try:
        version = pool.server_version()
    except (QueryError, ScanError) as e:
        pool.close()
        raise ConnectionFailure(f'Unable to connect to database: {e}') from e

    logger.debug(f'Connected to {options.drivername} server version {version}')
    return pool, version


def close(pool: Pool | None) -> None:
    """Release the pool; idempotent.
    """
    if pool is not None:
        pool.close()


def dispose_all_pools() -> None:
    """Close every pool that is still open."""
    with _open_pools_lock:
        pools = list(_open_pools)
    for pool in pools:
        pool.close()
    logger.debug('All database pools disposed')


atexit.register(dispose_all_pools)
