"""
SQLite-specific strategy implementation.

SQLite uses qmark (`?`) placeholders, where the marker order alone carries
the position. It has no array columns, so the array-append modifier is
rejected at build time.
"""
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy.pool import StaticPool

from dbhelper.exceptions import ConfigError
from dbhelper.sql import Placeholders, QmarkPlaceholders
from dbhelper.strategy.base import DatabaseStrategy, register_strategy
from dbhelper.types import ValueKind, convert_date, convert_datetime

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from dbhelper.options import DatabaseOptions


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    version_query = 'SELECT sqlite_version()'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def placeholders(self) -> Placeholders:
        return QmarkPlaceholders()

    def array_append(self, column: str, placeholder: str) -> str:
        raise ConfigError(f'SQLite has no array columns, cannot append to {column!r}')

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    @staticmethod
    def register_converters() -> None:
        """Register ISO 8601 converters for declared date and datetime columns.

        sqlite3 converters are process-wide; registering twice is harmless.
        """
        sqlite3.register_converter('date', convert_date)
        sqlite3.register_converter('datetime', convert_datetime)
        sqlite3.register_converter('timestamp', convert_datetime)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite.

        In-memory databases exist per connection, so they share one
        connection through StaticPool.
        """
        self.register_converters()
        connect_args = {
            'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
            'check_same_thread': False,
        }
        if options.database in {None, '', ':memory:'}:
            return {'poolclass': StaticPool, 'connect_args': connect_args}
        return {
            'connect_args': connect_args,
            'pool_size': options.pool_max_connections,
            'pool_timeout': options.pool_wait_timeout,
            'max_overflow': 0,
            'pool_reset_on_return': 'rollback',
        }

    def create_cursor(self, raw_conn: Any) -> sqlite3.Cursor:
        return raw_conn.cursor()

    def interrupt(self, raw_conn: Any) -> None:
        """Abort any query running on the connection.
        """
        logger.debug('Interrupting SQLite connection')
        raw_conn.interrupt()

    def resolve_kind(self, type_code: Any) -> ValueKind | None:
        """SQLite cursors report no type codes.
        """
        return None

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']
