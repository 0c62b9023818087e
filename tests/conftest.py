import logging

import pytest
from dbhelper.connection import dispose_all_pools

pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.sqlite',
    'tests.fixtures.postgres',
]


@pytest.fixture(autouse=True)
def close_pools():
    """Close any pool a test left open to keep tests isolated."""
    yield
    dispose_all_pools()


@pytest.fixture(autouse=True)
def debug_logging(caplog):
    caplog.set_level(logging.DEBUG, logger='dbhelper')
