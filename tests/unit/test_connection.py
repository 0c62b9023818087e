"""
Tests for Pool input checks, connect() failure handling and pool lifecycle.
"""
import dbhelper as db
import pytest
from dbhelper.connection import dispose_all_pools
from dbhelper.exceptions import ConfigError, ConnectionFailure
from dbhelper.options import DatabaseOptions


class TestEmptyColumns:
    """Empty column lists fail before any connection is checked out."""

    def test_pool_methods(self, unreachable_pool):
        with pytest.raises(ConfigError):
            unreachable_pool.select([], 'users')
        with pytest.raises(ConfigError):
            unreachable_pool.update('users', [], 'WHERE id = ?', 1)
        with pytest.raises(ConfigError):
            unreachable_pool.insert('users', [], 'id')
        with pytest.raises(ConfigError):
            unreachable_pool.delete('users', [])

    def test_module_functions(self, unreachable_pool):
        with pytest.raises(ConfigError):
            db.select(unreachable_pool, [], 'users')
        with pytest.raises(ConfigError):
            db.update(unreachable_pool, 'users', [])
        with pytest.raises(ConfigError):
            db.insert(unreachable_pool, 'users', [], 'id')
        with pytest.raises(ConfigError):
            db.delete(unreachable_pool, 'users', [])

    def test_array_append_on_sqlite(self, unreachable_pool):
        with pytest.raises(ConfigError, match='no array columns'):
            unreachable_pool.update('users', ['tags.append'], 'WHERE id = ?', 'x', 1)


class TestArity:

    def test_update_needs_column_values(self, unreachable_pool):
        with pytest.raises(ConfigError, match='at least 2 parameters, got 1'):
            unreachable_pool.update('users', ['name', 'value'], '', 'x')

    def test_insert_exact(self, unreachable_pool):
        with pytest.raises(ConfigError, match='expects 2 parameters, got 3'):
            unreachable_pool.insert('users', ['name', 'value'], 'id', 'x', 1, 2)

    def test_delete_exact(self, unreachable_pool):
        with pytest.raises(ConfigError, match='expects 1 parameters, got 0'):
            unreachable_pool.delete('users', ['id'])


class TestLifecycle:

    def test_close_is_idempotent(self, fake_pool):
        pool, engine = fake_pool()
        db.close(pool)
        db.close(pool)
        pool.close()
        assert pool.closed
        assert engine.disposed == 1

    def test_close_none(self):
        db.close(None)

    def test_context_manager(self, fake_pool):
        pool, engine = fake_pool()
        with pool as p:
            assert p is pool
        assert pool.closed
        assert engine.disposed == 1

    def test_dispose_all_pools(self, fake_pool):
        first, _ = fake_pool()
        second, _ = fake_pool()
        dispose_all_pools()
        assert first.closed
        assert second.closed

    def test_dialect_and_repr(self, fake_pool):
        pool, _ = fake_pool()
        assert pool.dialect == 'sqlite'
        assert 'open' in repr(pool)
        pool.close()
        assert 'closed' in repr(pool)


class TestConnect:

    def test_in_memory(self):
        pool, version = db.connect('sqlite://')
        try:
            assert version.count('.') >= 1
            assert pool.dialect == 'sqlite'
            assert pool.server_version() == version
        finally:
            db.close(pool)

    def test_accepts_options(self, tmp_path):
        options = DatabaseOptions(drivername='sqlite', database=str(tmp_path / 'a.db'))
        pool, _ = db.connect(options, statement_timeout=5)
        try:
            assert pool.options.database == options.database
            assert pool.options.statement_timeout == 5
        finally:
            db.close(pool)

    def test_unreachable_database(self, tmp_path):
        missing = tmp_path / 'missing' / 'test.db'
        with pytest.raises(ConnectionFailure, match='Unable to connect'):
            db.connect({'drivername': 'sqlite', 'database': str(missing)})

    def test_invalid_options(self):
        with pytest.raises(ConnectionFailure, match='Invalid connection options'):
            db.connect({'drivername': 'oracle', 'database': 'x'})
        with pytest.raises(ConnectionFailure, match='Invalid connection options'):
            db.connect('mysql://user@localhost/app')

    def test_missing_required_options(self):
        with pytest.raises(ConnectionFailure, match='requires'):
            db.connect({'drivername': 'postgresql', 'database': 'x'})
