"""
Dialect strategies, looked up by driver name.
"""
from functools import lru_cache

from db2obj.strategy.base import _STRATEGY_REGISTRY, DatabaseStrategy
from db2obj.strategy.base import register_strategy
from db2obj.strategy.postgres import PostgresStrategy
from db2obj.strategy.sqlite import SQLiteStrategy

__all__ = [
    'DatabaseStrategy',
    'PostgresStrategy',
    'SQLiteStrategy',
    'register_strategy',
    'strategy_class',
    'get_strategy',
]


def strategy_class(dialect: str) -> type[DatabaseStrategy]:
    """Strategy class registered for `dialect`.

    Raises
        ValueError: If no strategy is registered under that name
    """
    try:
        return _STRATEGY_REGISTRY[dialect]
    except KeyError:
        raise ValueError(f'drivername must be one of: {sorted(_STRATEGY_REGISTRY)}') from None


@lru_cache(maxsize=8)
def get_strategy(dialect: str) -> DatabaseStrategy:
    """Shared strategy instance for `dialect`."""
    return strategy_class(dialect)()
