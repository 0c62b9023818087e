import pathlib
import sys
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

import sqlalchemy as sa

from dbhelper.strategy import get_available_dialects, get_strategy_class
from dbhelper.strategy import is_supported_dialect

__all__ = ['DatabaseOptions']

_URL_SCHEMES = {
    'postgres': 'postgresql',
    'postgresql': 'postgresql',
    'sqlite': 'sqlite',
}


def _scriptname() -> str | None:
    name = pathlib.Path(sys.argv[0]).stem if sys.argv and sys.argv[0] else ''
    return name or None


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `postgresql`, `sqlite`

    Connection pooling options:
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Seconds after which a connection is recycled (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)

    statement_timeout: default per-call deadline in seconds, 0 disables it.
    A CancelToken passed to a call overrides it.
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    statement_timeout: float = 0
    # Connection pooling parameters
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        self.appname = self.appname or _scriptname() or 'python_console'
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)

    @classmethod
    def from_url(cls, url: str, **overrides: Any) -> 'DatabaseOptions':
        """Parse a database URL.

        Accepts `postgresql://user:pw@host:5432/db` (also `postgres://` and
        `postgresql+psycopg://`) and `sqlite:///path/to.db`. Query arguments
        `connect_timeout` and `application_name` map to `timeout` and
        `appname`.
        """
        try:
            parsed = sa.make_url(url)
        except sa.exc.ArgumentError as e:
            raise ValueError(f'Invalid database URL: {e}') from e

        scheme = parsed.drivername.split('+')[0]
        if scheme not in _URL_SCHEMES:
            raise ValueError(f'Unsupported URL scheme: {parsed.drivername}')

        values: dict[str, Any] = {
            'drivername': _URL_SCHEMES[scheme],
            'hostname': parsed.host,
            'username': parsed.username,
            'password': parsed.password,
            'database': parsed.database,
            'port': parsed.port or 0,
        }
        if 'connect_timeout' in parsed.query:
            values['timeout'] = int(parsed.query['connect_timeout'])
        if 'application_name' in parsed.query:
            values['appname'] = parsed.query['application_name']
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **overrides: Any) -> 'DatabaseOptions':
        """Build options from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in {**mapping, **overrides}.items() if k in known}
        return cls(**values)

    @classmethod
    def load(cls, source: 'str | Mapping[str, Any] | DatabaseOptions',
             **overrides: Any) -> 'DatabaseOptions':
        """Coerce a URL, mapping or options object into options."""
        if isinstance(source, cls):
            if not overrides:
                return source
            return cls.from_mapping(vars(source), **overrides)
        if isinstance(source, str):
            return cls.from_url(source, **overrides)
        if isinstance(source, Mapping):
            return cls.from_mapping(source, **overrides)
        raise TypeError(f'Cannot build DatabaseOptions from {type(source).__name__}')

    def __repr__(self) -> str:
        shown = {f.name: getattr(self, f.name) for f in fields(self)}
        if shown.get('password'):
            shown['password'] = '***'
        args = ', '.join(f'{k}={v!r}' for k, v in shown.items())
        return f'DatabaseOptions({args})'
