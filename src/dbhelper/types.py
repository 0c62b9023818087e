"""
Consolidated type handling for database operations.

This module provides:
- ValueKind: closed set of scalar kinds a decoded column value can take
- postgres_kinds: PostgreSQL type OIDs -> ValueKind
- kind_of_value / coerce_value: one-level unwrap and coercion of driver values
- TypeConverter: convert Python parameter values to driver-compatible values
- convert_date / convert_datetime: SQLite converters for declared date columns
"""
import datetime
import decimal
import logging
import math
import uuid
from enum import Enum
from typing import Any

import dateutil.parser
import numpy as np
import pandas as pd
from psycopg.postgres import types as pg_types

logger = logging.getLogger(__name__)

__all__ = [
    'ValueKind',
    'postgres_kinds',
    'kind_of_value',
    'coerce_value',
    'TypeConverter',
    'convert_date',
    'convert_datetime',
]


class ValueKind(str, Enum):
    """Kind of a decoded column value."""
    NULL = 'null'
    BOOL = 'bool'
    INT = 'int'
    FLOAT = 'float'
    TEXT = 'text'
    BYTES = 'bytes'
    TIMESTAMP = 'timestamp'
    ARRAY = 'array'
    JSON = 'json'


# Type Resolution - PostgreSQL type codes -> ValueKind

_oid = lambda x: pg_types.get(x).oid
_aoid = lambda x: pg_types.get(x).array_oid

postgres_kinds: dict[int, ValueKind] = {}

for v in [_oid('"char"'), _oid('bpchar'), _oid('character varying'), _oid('character'),
          _oid('name'), _oid('text'), _oid('uuid'), _oid('varchar'), _oid('inet'),
          _oid('cidr'), _oid('interval')]:
    postgres_kinds[v] = ValueKind.TEXT

for v in [_oid('int2'), _oid('int4'), _oid('int8'), _oid('oid')]:
    postgres_kinds[v] = ValueKind.INT

for v in [_oid('float4'), _oid('float8'), _oid('numeric')]:
    postgres_kinds[v] = ValueKind.FLOAT

for v in [_oid('date'), _oid('time'), _oid('timetz'), _oid('timestamp'),
          _oid('timestamptz')]:
    postgres_kinds[v] = ValueKind.TIMESTAMP

postgres_kinds[_oid('bool')] = ValueKind.BOOL
postgres_kinds[_oid('bytea')] = ValueKind.BYTES

for v in [_oid('json'), _oid('jsonb')]:
    postgres_kinds[v] = ValueKind.JSON

for k in tuple(postgres_kinds):
    postgres_kinds[_aoid(k)] = ValueKind.ARRAY
postgres_kinds[_aoid('int2vector')] = ValueKind.ARRAY


def kind_of_value(value: Any) -> ValueKind:
    """Kind of a driver value whose column carried no usable type code.

    SQLite reports no type codes; its storage class is the value's type.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INT
    if isinstance(value, (float, decimal.Decimal)):
        return ValueKind.FLOAT
    if isinstance(value, (str, uuid.UUID)):
        return ValueKind.TEXT
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BYTES
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return ValueKind.TIMESTAMP
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.JSON
    raise TypeError(f'Unsupported value type {type(value).__name__}')


def _unwrap(value: Any) -> Any:
    """Dereference one level of driver wrapping."""
    if isinstance(value, (memoryview, bytearray)):
        return bytes(value)
    if hasattr(value, 'obj') and type(value).__name__ in {'Json', 'Jsonb'}:
        return value.obj
    return value


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in {0, 1}:
        return bool(value)
    raise TypeError(f'cannot decode {value!r} as bool')


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError(f'cannot decode {value!r} as int')
    if isinstance(value, int):
        return value
    if isinstance(value, decimal.Decimal) and value == value.to_integral_value():
        return int(value)
    raise TypeError(f'cannot decode {value!r} as int')


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError(f'cannot decode {value!r} as float')
    if isinstance(value, (int, float, decimal.Decimal)):
        return float(value)
    raise TypeError(f'cannot decode {value!r} as float')


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, dict, list, tuple)):
        raise TypeError(f'cannot decode {value!r} as text')
    return str(value)


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    raise TypeError(f'cannot decode {value!r} as bytes')


def _to_timestamp(value: Any) -> datetime.date | datetime.time:
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value
    raise TypeError(f'cannot decode {value!r} as timestamp')


def _to_array(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    raise TypeError(f'cannot decode {value!r} as array')


_COERCERS = {
    ValueKind.BOOL: _to_bool,
    ValueKind.INT: _to_int,
    ValueKind.FLOAT: _to_float,
    ValueKind.TEXT: _to_text,
    ValueKind.BYTES: _to_bytes,
    ValueKind.TIMESTAMP: _to_timestamp,
    ValueKind.ARRAY: _to_array,
    ValueKind.JSON: lambda value: value,
}


def coerce_value(value: Any, kind: ValueKind | None) -> tuple[ValueKind, Any]:
    """Unwrap a driver value once and coerce it to `kind`.

    A `None` kind means the column type is unknown and the kind is taken from
    the value. NULL wins over any column kind.

    Raises TypeError or ValueError when the value does not fit the kind.
    """
    value = _unwrap(value)
    if value is None:
        return ValueKind.NULL, None
    if kind is None or kind is ValueKind.NULL:
        kind = kind_of_value(value)
    return kind, _COERCERS[kind](value)


# SQLite Converters - declared date/time columns -> Python values

def convert_date(val: bytes) -> datetime.date:
    """Convert ISO 8601 date string to date object."""
    return dateutil.parser.isoparse(val.decode()).date()


def convert_datetime(val: bytes) -> datetime.datetime:
    """Convert ISO 8601 datetime string to datetime object."""
    return dateutil.parser.isoparse(val.decode())


# Type Converter - Handles Python -> Database value conversion

NUMPY_FLOAT_TYPES = (np.floating,)
NUMPY_INT_TYPES = (np.integer, np.unsignedinteger)


def _convert_numpy_value(val: Any) -> float | int | bool | datetime.datetime | None:
    """Convert NumPy value to Python type."""
    if isinstance(val, np.floating) and np.isnan(val):
        return None

    if isinstance(val, np.datetime64):
        if np.isnat(val):
            return None
        return pd.Timestamp(val).to_pydatetime()

    return val.item()


class TypeConverter:
    """Universal type conversion for statement parameters.

    Handles NumPy and pandas scalars; everything else is passed through.
    Placeholder-bound values are never string-interpolated.
    """

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a database-compatible format."""
        if value is None:
            return None

        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None

        if value is pd.NaT or value is pd.NA:
            return None

        if isinstance(value, (*NUMPY_FLOAT_TYPES, *NUMPY_INT_TYPES, np.bool_, np.datetime64)):
            return _convert_numpy_value(value)

        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        if isinstance(value, np.ndarray):
            return [TypeConverter.convert_value(v) for v in value.tolist()]

        return value

    @staticmethod
    def convert_params(params: Any) -> tuple:
        """Convert an ordered parameter sequence for a statement."""
        if params is None:
            return ()
        return tuple(TypeConverter.convert_value(v) for v in params)
