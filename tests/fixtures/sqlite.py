import sqlite3

import dbhelper as db
import pytest

from tests import config


def stage_test_data(path):
    """Create and fill test_table with the sqlite3 driver directly."""
    cn = sqlite3.connect(path)
    try:
        cn.executescript("""
        CREATE TABLE test_table (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            value INTEGER NOT NULL,
            ratio REAL,
            payload BLOB
        );
        INSERT INTO test_table (name, value, ratio, payload) VALUES
        ('Alice', 10, 0.5, x'0102'),
        ('Bob', 20, NULL, NULL),
        ('Charlie', 30, 1.5, NULL);
        """)
        cn.commit()
    finally:
        cn.close()


@pytest.fixture
def sqlite_path(tmp_path):
    path = str(tmp_path / 'test.db')
    stage_test_data(path)
    return path


@pytest.fixture
def sqlite_pool(sqlite_path):
    """File-based SQLite pool over a freshly staged database."""
    pool, version = db.connect({**vars(config.sqlite), 'database': sqlite_path})
    assert version
    yield pool
    db.close(pool)
