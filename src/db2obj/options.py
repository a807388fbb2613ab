from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pandas as pd
from db2obj.strategy import strategy_class

from libb import ConfigOptions, scriptname

__all__ = [
    'ConnectorOptions',
    'pandas_numpy_data_loader',
    'iterdict_data_loader',
]


def iterdict_data_loader(rows, columns, **kwargs) -> list[dict]:
    """Minimal data loader.

    Accepts additional keyword arguments for compatibility with other data
    loaders, but doesn't use them.
    """
    if not rows:
        return []
    return list(rows)


def pandas_numpy_data_loader(rows, columns, **kwargs) -> pd.DataFrame:
    """Standard pandas DataFrame loader using NumPy.

    Always returns a DataFrame, never None, with columns preserved for empty
    results.
    """
    if not rows:
        return pd.DataFrame(columns=list(columns))
    return pd.DataFrame.from_records(list(rows), columns=list(columns))


@dataclass
class ConnectorOptions(ConfigOptions):
    """Options

    supported driver names: `postgresql`, `sqlite`

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: False)
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)

    `data_loader` shapes mapped rows exported with `db2obj.frame.to_frame`.
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    data_loader: Callable[..., Any] | None = None
    # Connection pooling parameters
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        strategy_cls = strategy_class(self.drivername)
        self.appname = self.appname or scriptname() or 'python_console'
        strategy_cls.validate_options(self)
        if self.data_loader is None:
            self.data_loader = pandas_numpy_data_loader
