"""
Base strategy interface for dialect-specific behavior.

Defines the abstract base class that all dialect strategy implementations
must inherit from. The strategy pattern keeps placeholder style, connection
URLs, type-code resolution and statement interruption out of the builders,
executor and decoder, which work with any dialect through this interface.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from dbhelper.sql import Placeholders
from dbhelper.types import ValueKind

if TYPE_CHECKING:
    from dbhelper.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for dialect-specific operations.
    """

    #: SQL returning the server version as a single text value
    version_query: str = ''

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'postgresql', 'sqlite')."""

    @abstractmethod
    def placeholders(self) -> Placeholders:
        """Return a fresh placeholder counter for one statement."""

    @abstractmethod
    def array_append(self, column: str, placeholder: str) -> str:
        """Return the assignment expression appending a value to an array column.

        Raises
            ConfigError: if the dialect has no array columns
        """

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL."""

    @abstractmethod
    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs, pool settings included."""

    @abstractmethod
    def create_cursor(self, raw_conn: Any) -> Any:
        """Create a tuple-row cursor that accepts this dialect's placeholders."""

    @abstractmethod
    def interrupt(self, raw_conn: Any) -> None:
        """Abort the statement running on `raw_conn`.

        Called from a different thread than the one blocked in the driver.
        """

    @abstractmethod
    def resolve_kind(self, type_code: Any) -> ValueKind | None:
        """Map a cursor description type code to a ValueKind.

        Returns None when the code is unknown; values are then classified by
        their own type.
        """

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return option names that must be set for this dialect."""
        return []

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate that all required options are present.

        Raises
            ValueError: If any required option is missing
        """
        required = cls.get_required_options()
        missing = [opt for opt in required if not getattr(options, opt, None)]
        if missing:
            raise ValueError(f'{cls.__name__} requires: {", ".join(missing)}')
