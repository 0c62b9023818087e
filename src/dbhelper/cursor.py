"""
Statement execution against a pooled connection.

Every Executor call is one synchronous round trip: check out a connection,
run one statement, commit writes, return the connection. Driver failures are
wrapped in QueryError; row decoding failures in ScanError.
"""
import decimal
import logging
import time
from collections.abc import Callable
from functools import partial, wraps
from typing import TYPE_CHECKING, Any, TypeVar

from dbhelper.cancel import CancelToken
from dbhelper.exceptions import ConnectionFailure, DriverError, OperationCancelled
from dbhelper.exceptions import QueryError
from dbhelper.exceptions import ScanError
from dbhelper.row import RowStream, decode
from dbhelper.sql import Statement
from dbhelper.strategy import DatabaseStrategy
from dbhelper.types import TypeConverter, ValueKind

if TYPE_CHECKING:
    from dbhelper.connection import Pool

logger = logging.getLogger(__name__)

T = TypeVar('T')

__all__ = ['Executor', 'dumpsql']


def dumpsql(func):
    """Decorator for logging SQL statements, parameters and timing."""
    @wraps(func)
    def wrapper(self, statement: Statement, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{statement.sql}\nargs: {statement.parameters}')
        try:
            return func(self, statement, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{statement.sql}\nargs: {statement.parameters}')
            raise
        finally:
            elapsed = time.time() - start
            self.pool.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Executor:
    """Runs built statements through a Pool.

    The pool is only contacted inside `_round_trip`; nothing is cached and
    nothing is retried.
    """

    def __init__(self, pool: 'Pool', strategy: DatabaseStrategy) -> None:
        self.pool = pool
        self.strategy = strategy

    def _token(self, cancel: CancelToken | None) -> CancelToken:
        if cancel is not None:
            return cancel
        return CancelToken.with_timeout(self.pool.options.statement_timeout or None)

    def _round_trip(self, statement: Statement, cancel: CancelToken | None,
                    consume: Callable[[Any], T], commit: bool) -> T:
        """Execute `statement` on a checked-out connection and consume the cursor.
        """
        token = self._token(cancel)
        params = TypeConverter.convert_params(statement.parameters)
        try:
            token.check()
        except OperationCancelled as e:
            raise QueryError(statement.sql, params, e) from None

        try:
            proxy = self.pool.checkout()
        except (*DriverError, ConnectionFailure) as e:
            raise QueryError(statement.sql, params, e) from e

        try:
            raw_conn = proxy.driver_connection
            try:
                cursor = self.strategy.create_cursor(raw_conn)
            except DriverError as e:
                raise QueryError(statement.sql, params, e) from e
            try:
                with token.watch(partial(self.strategy.interrupt, raw_conn)):
                    try:
                        cursor.execute(statement.sql, params)
                    except DriverError as e:
                        raise self._query_error(statement, params, token, e) from e
                    try:
                        result = consume(cursor)
                    except (*DriverError, ValueError, TypeError) as e:
                        if token.cancelled:
                            raise self._query_error(statement, params, token, e) from e
                        raise ScanError(e) from e
                if commit:
                    try:
                        proxy.commit()
                    except DriverError as e:
                        raise QueryError(statement.sql, params, e) from e
                return result
            except Exception:
                self._rollback(proxy)
                raise
            finally:
                cursor.close()
        except OperationCancelled as e:
            raise QueryError(statement.sql, params, e) from e
        finally:
            proxy.close()

    @staticmethod
    def _query_error(statement: Statement, params: tuple, token: CancelToken,
                     cause: BaseException) -> QueryError:
        if token.cancelled:
            cancelled = OperationCancelled(token.reason)
            cancelled.__cause__ = cause
            return QueryError(statement.sql, params, cancelled)
        return QueryError(statement.sql, params, cause)

    @staticmethod
    def _rollback(proxy: Any) -> None:
        try:
            proxy.rollback()
        except DriverError as e:
            logger.debug(f'Rollback failed: {e}')

    @dumpsql
    def fetch_rows(self, statement: Statement, cancel: CancelToken | None = None) -> RowStream:
        """Run a select and fetch its rows.
        """
        def consume(cursor):
            return RowStream.from_cursor(cursor, cursor.fetchall())
        stream = self._round_trip(statement, cancel, consume, commit=False)
        logger.debug(f'Select query returned {len(stream.rows)} rows')
        return stream

    @dumpsql
    def exec_write(self, statement: Statement, cancel: CancelToken | None = None) -> int:
        """Run an update or delete and return the rows affected.
        """
        rowcount = self._round_trip(statement, cancel, lambda cursor: cursor.rowcount,
                                    commit=True)
        logger.debug(f'{statement.verb.value} affected {rowcount} rows')
        return rowcount

    @dumpsql
    def exec_insert_returning_id(self, statement: Statement,
                                 cancel: CancelToken | None = None) -> Any:
        """Run an insert with a RETURNING clause and return the inserted key.

        The key is the first column of the first returned row, decoded with
        the column's kind. Integer keys come back as int and text keys
        (e.g. uuid) as str. Numeric keys keep the driver's Decimal, or int
        when integral, so wide keys are not rounded through float.

        Raises
            ScanError: if no row comes back or the key is NULL or not a scalar
        """
        def consume(cursor):
            # drain so sqlite finishes the RETURNING statement before commit
            rows = cursor.fetchall()
            return RowStream.from_cursor(cursor, rows[:1])

        stream = self._round_trip(statement, cancel, consume, commit=True)
        if not stream.rows or not stream.description:
            raise ScanError('insert returned no row')

        key = stream.description[0][0]
        raw = stream.rows[0][0]
        record = decode(RowStream(stream.description[:1], [stream.rows[0][:1]]),
                        [key], self.strategy)[0]
        if record.kinds[key] not in {ValueKind.INT, ValueKind.FLOAT, ValueKind.TEXT}:
            raise ScanError(f'cannot decode inserted key {record[key]!r} '
                            f'of kind {record.kinds[key].value}')
        value = record[key]
        if isinstance(raw, decimal.Decimal):
            # numeric keys keep full precision
            value = int(raw) if raw == raw.to_integral_value() else raw
        logger.debug(f'Inserted row with {key}={value!r}')
        return value
