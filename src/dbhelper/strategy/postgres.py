"""
PostgreSQL-specific strategy implementation.

Statements use PostgreSQL's native numbered placeholders (`$1, $2...`), so
they are sent through psycopg's `RawCursor`, which passes them to the server
untouched instead of expecting `%s` markers.
"""
import logging
from typing import TYPE_CHECKING, Any

import psycopg
import sqlalchemy as sa

from dbhelper.sql import NumberedPlaceholders, Placeholders
from dbhelper.strategy.base import DatabaseStrategy, register_strategy
from dbhelper.types import ValueKind, postgres_kinds

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from dbhelper.options import DatabaseOptions


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    version_query = 'SELECT VERSION()'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def placeholders(self) -> Placeholders:
        return NumberedPlaceholders()

    def array_append(self, column: str, placeholder: str) -> str:
        return f'{column} = array_append({column}, {placeholder})'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {'application_name': options.appname}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)

        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or None,
            database=options.database,
            query=query,
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for PostgreSQL."""
        return {
            'pool_size': options.pool_max_connections,
            'pool_recycle': options.pool_max_idle_time,
            'pool_timeout': options.pool_wait_timeout,
            'max_overflow': 0,
            'pool_pre_ping': True,
            'pool_reset_on_return': 'rollback',
        }

    def create_cursor(self, raw_conn: Any) -> psycopg.RawCursor:
        """Create a cursor that sends `$n` placeholders to the server as-is.
        """
        return psycopg.RawCursor(raw_conn)

    def interrupt(self, raw_conn: Any) -> None:
        """Send a cancel request for the running statement.
        """
        logger.debug('Sending cancel request to PostgreSQL backend')
        if hasattr(raw_conn, 'cancel_safe'):
            raw_conn.cancel_safe()
        else:
            raw_conn.cancel()

    def resolve_kind(self, type_code: Any) -> ValueKind | None:
        return postgres_kinds.get(type_code)

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'database']
