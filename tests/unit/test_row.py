"""
Tests for decoding driver rows into ResultRecords.
"""
from decimal import Decimal

import pandas as pd
import pytest
from dbhelper.exceptions import ScanError
from dbhelper.row import ResultRecord, ResultSet, RowStream, decode
from dbhelper.types import ValueKind
from psycopg.postgres import types as pg_types

INT4 = pg_types.get('int4').oid
TEXT = pg_types.get('text').oid
NUMERIC = pg_types.get('numeric').oid
BYTEA = pg_types.get('bytea').oid


def pg_stream(rows):
    return RowStream((('id', INT4), ('name', TEXT), ('ratio', NUMERIC)), rows)


def test_two_rows_three_columns():
    """Test every record has identical keys and values keep row order"""
    stream = pg_stream([(1, 'Alice', Decimal('0.50')), (2, 'Bob', None)])
    result = decode(stream, ['id', 'name', 'ratio'], 'postgresql')

    assert len(result) == 2
    assert list(result[0]) == list(result[1]) == ['id', 'name', 'ratio']
    assert list(result[0].values()) == [1, 'Alice', 0.5]
    assert list(result[1].values()) == [2, 'Bob', None]


def test_record_kinds_and_attribute_access():
    result = decode(pg_stream([(1, 'Alice', None)]), ['id', 'name', 'ratio'])
    record = result[0]
    assert record.name == 'Alice'
    assert record.kinds == {'id': ValueKind.INT, 'name': ValueKind.TEXT,
                            'ratio': ValueKind.NULL}
    with pytest.raises(AttributeError):
        record.missing


def test_record_keys_follow_statement_columns():
    """Test keys come from the builder's columns, not the driver's names"""
    stream = RowStream((('count', INT4),), [(3,)])
    assert decode(stream, ['total'])[0] == {'total': 3}


def test_empty_result_keeps_columns():
    result = decode(pg_stream([]), ['id', 'name', 'ratio'])
    assert result == []
    assert isinstance(result, ResultSet)
    assert result.columns == ('id', 'name', 'ratio')


def test_duplicate_names_last_write_wins():
    stream = RowStream((('id', INT4), ('id', INT4)), [(1, 2)])
    record = decode(stream, ['id', 'id'])[0]
    assert record == {'id': 2}


def test_bytes_unwrapped():
    stream = RowStream((('payload', BYTEA),), [(memoryview(b'\x01\x02'),)])
    assert decode(stream, ['payload'])[0]['payload'] == b'\x01\x02'


def test_sqlite_kinds_from_values():
    stream = RowStream((('id', None), ('name', None), ('ratio', None)),
                       [(1, 'Alice', 0.5), (2, None, 1)])
    result = decode(stream, ['id', 'name', 'ratio'], 'sqlite')
    assert result[0].kinds == {'id': ValueKind.INT, 'name': ValueKind.TEXT,
                               'ratio': ValueKind.FLOAT}
    assert result[1].kinds['name'] is ValueKind.NULL
    assert result[1].kinds['ratio'] is ValueKind.INT


def test_mismatched_value_raises_scan_error():
    """Test a bad row discards the rows already decoded"""
    stream = pg_stream([(1, 'Alice', None), ('not-an-int', 'Bob', None)])
    with pytest.raises(ScanError, match='cannot decode'):
        decode(stream, ['id', 'name', 'ratio'])


def test_column_count_mismatch():
    with pytest.raises(ScanError, match='expected 2 columns'):
        decode(pg_stream([]), ['id', 'name'])


def test_short_row():
    with pytest.raises(ScanError, match='expected 3 values'):
        decode(pg_stream([(1, 'Alice')]), ['id', 'name', 'ratio'])


def test_to_dataframe():
    result = decode(pg_stream([(1, 'Alice', None), (2, 'Bob', Decimal('1.5'))]),
                    ['id', 'name', 'ratio'])
    df = result.to_dataframe()
    assert list(df.columns) == ['id', 'name', 'ratio']
    assert df['name'].tolist() == ['Alice', 'Bob']


def test_empty_to_dataframe():
    df = ResultSet(['id', 'name']).to_dataframe()
    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ['id', 'name']
    assert df.empty


def test_result_record_is_a_dict():
    record = ResultRecord(a=1)
    assert record == {'a': 1}
    assert record.kinds == {}
