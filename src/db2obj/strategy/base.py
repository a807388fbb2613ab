"""
Base strategy interface for dialect-specific connector behaviour.

Each concrete strategy encapsulates what differs between stores: how the
engine is built, which options are mandatory, how the identity of the last
inserted row is read back, and whether a streaming cursor may share the
connector's own connection.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

if TYPE_CHECKING:
    from db2obj.connector import Connector
    from db2obj.options import ConnectorOptions

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
    """Base class for database-specific operations.
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier."""

    @abstractmethod
    def build_connection_url(self, options: 'ConnectorOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for this dialect.

        Args:
            options: ConnectorOptions containing connection parameters

        Returns
            URL suitable for create_engine
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'ConnectorOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.
        """

    @abstractmethod
    def last_insert_id_sql(self) -> str:
        """SQL returning the identity assigned by the last insert on this session.

        The statement must alias its single column as ``id``.
        """

    @abstractmethod
    def cursor_connection(self, cn: 'Connector') -> tuple[sa.engine.Connection, bool]:
        """Connection to stream a linear fetch on.

        Returns
            The connection and whether the caller owns (must close) it
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.
        """

    @classmethod
    def validate_options(cls, options: 'ConnectorOptions') -> None:
        """Validate options for this dialect.

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')
