"""
Statement logging and the per-identity streaming cursor.
"""
import logging
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Any

import sqlalchemy as sa

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL statements and bound parameters."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            return func(self, operation, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


@dataclass
class LinearFetchSession:
    """An open streaming select owned by one table identity.

    `connection` is set only when the session owns a dedicated connection
    that must be closed together with the result.
    """
    identity: str
    result: sa.engine.CursorResult
    connection: sa.engine.Connection | None = None
    rows_fetched: int = 0
    _rows: sa.engine.MappingResult = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._rows = self.result.mappings()

    def fetch(self) -> dict[str, Any] | None:
        """Advance one row; None once the result is exhausted."""
        row = self._rows.fetchone()
        if row is None:
            return None
        self.rows_fetched += 1
        return dict(row)

    def close(self) -> None:
        try:
            self.result.close()
        finally:
            if self.connection is not None:
                self.connection.close()
        logger.debug(f'Closed cursor for {self.identity} after {self.rows_fetched} rows')
