"""Connection settings for integration tests."""
from types import SimpleNamespace

postgresql = SimpleNamespace(
    drivername='postgresql',
    hostname='localhost',
    username='postgres',
    password='postgres',
    database='test_db',
    port=5432,
    timeout=30,
    pool_max_connections=2,
    pool_max_idle_time=600,
    pool_wait_timeout=30,
    )

sqlite = SimpleNamespace(
    drivername='sqlite',
    pool_max_connections=2,
    )
