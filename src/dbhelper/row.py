"""Row decoding into generic ordered records."""
import decimal
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from dbhelper.exceptions import ScanError
from dbhelper.strategy import DatabaseStrategy, get_strategy
from dbhelper.types import ValueKind, coerce_value

logger = logging.getLogger(__name__)

__all__ = [
    'RowStream',
    'ResultRecord',
    'ResultSet',
    'decode',
]


@dataclass(frozen=True, slots=True)
class RowStream:
    """Rows fetched by one executor round trip.

    `description` holds one `(name, type_code)` pair per driver column.
    """
    description: tuple[tuple[str, Any], ...]
    rows: Sequence[Sequence[Any]] = field(default_factory=tuple)

    @classmethod
    def from_cursor(cls, cursor: Any, rows: Sequence[Sequence[Any]]) -> 'RowStream':
        description = tuple((d[0], d[1]) for d in (cursor.description or ()))
        return cls(description, rows)


class ResultRecord(dict):
    """Ordered mapping of column name to decoded value, one per row.

    Keys also read as attributes. `kinds` maps every key to its ValueKind;
    a column literally named `kinds` is only reachable by item access.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.kinds: dict[str, ValueKind] = {}

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None


class ResultSet(list):
    """Ordered sequence of ResultRecord, possibly empty, never None.

    `columns` keeps the record keys so an empty result still describes its
    shape.
    """

    def __init__(self, columns: Sequence[str] = (), records: Sequence[ResultRecord] = ()) -> None:
        super().__init__(records)
        self.columns: tuple[str, ...] = tuple(columns)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to a pandas DataFrame, columns preserved for empty results.

        Duplicate keys collapse into one column, as they do in each record.
        """
        columns = list(dict.fromkeys(self.columns))
        if not self:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame.from_records([dict(r) for r in self], columns=columns)


def decode(stream: RowStream, columns: Sequence[str],
           dialect: 'str | DatabaseStrategy' = 'postgresql') -> ResultSet:
    """Decode every row of `stream` into a ResultRecord keyed by `columns`.

    The kind of each column is resolved once from the driver type code; when
    the code is unknown the kind comes from each value. Values are unwrapped
    one level and coerced to their kind. Duplicate column names keep the
    last value of the row.

    Raises
        ScanError: on a column count mismatch or a value that does not fit
        its column kind. Rows decoded before the error are discarded.
    """
    if len(columns) != len(stream.description):
        raise ScanError(f'expected {len(columns)} columns, driver returned '
                        f'{len(stream.description)}')

    strategy = get_strategy(dialect)
    kinds = [strategy.resolve_kind(type_code) for _, type_code in stream.description]

    result = ResultSet(columns)
    for row in stream.rows:
        if len(row) != len(columns):
            raise ScanError(f'expected {len(columns)} values, row has {len(row)}')
        record = ResultRecord()
        for name, kind, raw in zip(columns, kinds, row):
            try:
                record.kinds[name], record[name] = coerce_value(raw, kind)
            except (TypeError, ValueError, decimal.InvalidOperation) as e:
                raise ScanError(e) from e
        result.append(record)

    logger.debug(f'Decoded {len(result)} rows with {len(columns)} columns')
    return result
