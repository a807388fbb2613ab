"""
Database connector built on SQLAlchemy.

This module provides:
1. The `connect()` function for creating new connectors
2. The `Connector` class, the capability every mapped table is handed
3. Engine creation and management through a thread-safe registry

The Connector executes parametrized SQL with named (``:name``) placeholders
and keeps one streaming cursor per table identity:
- execute(sql, params) - run a read, return rows as dicts or None on failure
- execute_non_query(sql, params) - run a write, return success
- last_insert_id() / last_error()
- start_cursor / next_cursor_row / end_cursor / is_cursor_open

Store-level failures are caught at this boundary, rolled back, recorded for
`last_error()` and reported as None/False.
"""
import atexit
import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import fields
from functools import wraps
from typing import Any, Self, TypeVar

import sqlalchemy as sa
from db2obj.cursor import LinearFetchSession, dumpsql
from db2obj.exceptions import ConnectionFailure, DbConnectionError, StoreError
from db2obj.exceptions import is_retryable_error
from db2obj.options import ConnectorOptions
from db2obj.strategy import DatabaseStrategy, get_strategy
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from libb import attrdict, load_options

__all__ = [
    'Connector',
    'connect',
    'check_connection',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')
_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def check_connection(func: Callable[..., T] | None = None, *, max_retries: int = 3,
                     retry_delay: float = 1, retry_errors: type | tuple[type, ...] | None = None,
                     retry_backoff: float = 1.5,
                     sleep_func: Callable[[float], None] = time.sleep) -> Callable[..., T]:
    """Connection retry decorator with backoff.

    Retries the wrapped operation on transient connection errors only; any
    other error propagates on the first attempt.

    Supports both @check_connection and @check_connection() syntax.
    """
    def decorator(f: Callable[..., T]) -> Callable[..., T]:
        @wraps(f)
        def inner(*args: Any, **kwargs: Any) -> T:
            error_types = retry_errors if retry_errors is not None else DbConnectionError

            tries = 0
            delay = retry_delay
            while tries < max_retries:
                try:
                    return f(*args, **kwargs)
                except error_types as err:
                    if not is_retryable_error(err):
                        raise
                    tries += 1
                    if tries >= max_retries:
                        logger.error(f'Maximum retries ({max_retries}) exceeded: {err}')
                        raise
                    logger.warning(f'Connection error (attempt {tries}/{max_retries}): {err}')
                    sleep_func(delay)
                    delay *= retry_backoff

        return inner

    if func is None:
        return decorator
    return decorator(func)


def get_engine_for_options(options: ConnectorOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.
    """
    key = f'{str(options)}_{options.use_pool}_{options.pool_max_connections}'

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        strategy = get_strategy(options.drivername)
        url = strategy.build_connection_url(options)

        engine_kwargs: dict[str, Any] = {'echo': False}
        engine_kwargs.update(strategy.get_engine_kwargs(options))

        if not options.use_pool:
            engine_kwargs['poolclass'] = NullPool
        else:
            engine_kwargs['pool_size'] = options.pool_max_connections
            engine_kwargs['pool_recycle'] = options.pool_max_idle_time
            engine_kwargs['pool_timeout'] = options.pool_wait_timeout
            engine_kwargs['pool_pre_ping'] = True
            engine_kwargs['pool_reset_on_return'] = 'rollback'

        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class Connector:
    """Wraps a SQLAlchemy connection with the operations mapped tables consume.

    One Connector is created at process start, passed to every mapped table,
    and closed at shutdown. It tracks query counts and timing, and owns the
    linear-fetch sessions of all table identities.
    """

    def __init__(self, sa_connection: sa.engine.Connection | None = None,
                 options: ConnectorOptions | None = None) -> None:
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine if sa_connection else None
        self.options = options
        self._dialect = sa_connection.dialect.name if sa_connection else None
        self.calls = 0
        self.time = 0
        self.rowcount = -1
        self._last_error: attrdict | None = None
        self._sessions: dict[str, LinearFetchSession] = {}
        self._sessions_lock = threading.RLock()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        try:
            self.close()
            logger.debug('Closed connector via context manager')
        except Exception as e:
            logger.debug(f'Error closing connector in __exit__: {e}')

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql' or 'sqlite')."""
        return self._dialect

    @property
    def strategy(self) -> DatabaseStrategy:
        return get_strategy(self._dialect)

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def commit(self) -> None:
        self.sa_connection.commit()

    def rollback(self) -> None:
        self.sa_connection.rollback()

    def close(self) -> None:
        """End every open cursor, commit and close the connection.
        """
        with self._sessions_lock:
            for identity in list(self._sessions):
                self.end_cursor(identity)

        if self.sa_connection is not None and not self.sa_connection.closed:
            try:
                if self.sa_connection.in_transaction():
                    self.commit()
            except StoreError as e:
                logger.debug(f'Could not commit before close: {e}')
            self.sa_connection.close()
            logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s (avg: {self.time/max(1,self.calls):.3f}s per query)')

    def _ensure_connection(self) -> None:
        """Reopen a closed connection and clear an invalidated one before use.

        Raises
            ConnectionFailure: If the connector was built without a connection
        """
        if self.sa_connection is None:
            raise ConnectionFailure('Connector has no connection; create it with connect()')
        if self.sa_connection.closed:
            self.sa_connection = self.engine.connect()
            logger.debug('Reopened closed connection')
        elif self.sa_connection.invalidated:
            self.sa_connection.rollback()
            logger.debug('Rolled back invalidated connection')

    def _record_failure(self, sql: str, err: BaseException) -> None:
        try:
            self.rollback()
        except StoreError as e:
            logger.debug(f'Rollback after failure did not complete: {e}')
        orig = getattr(err, 'orig', None) or err
        self._last_error = attrdict(
            type=type(orig).__name__,
            message=str(orig),
            sql=sql,
            )
        logger.debug(f'Statement failed ({self._last_error.type}): {self._last_error.message}')

    @check_connection
    @dumpsql
    def _select(self, sql: str, params: Mapping[str, Any] | None) -> list[dict[str, Any]]:
        self._ensure_connection()
        result = self.sa_connection.execute(sa.text(sql), dict(params or {}))
        rows = [dict(row) for row in result.mappings()]
        logger.debug(f'Select query returned {len(rows)} rows')
        return rows

    @check_connection
    @dumpsql
    def _modify(self, sql: str, params: Mapping[str, Any] | None) -> int:
        self._ensure_connection()
        result = self.sa_connection.execute(sa.text(sql), dict(params or {}))
        rowcount = result.rowcount
        self.commit()
        return rowcount

    @check_connection
    @dumpsql
    def _stream(self, sql: str, params: Mapping[str, Any] | None,
                connection: sa.engine.Connection) -> sa.engine.CursorResult:
        return connection.execute(sa.text(sql), dict(params or {}))

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]] | None:
        """Run a parametrized read and return rows as name->value dicts.

        Returns None when the statement fails; see `last_error()`.
        """
        if not sql:
            return None
        try:
            rows = self._select(sql, params)
        except StoreError as err:
            self._record_failure(sql, err)
            return None
        self._last_error = None
        return rows

    def execute_non_query(self, sql: str, params: Mapping[str, Any] | None = None) -> bool:
        """Run a parametrized write and commit it.

        Returns whether the statement succeeded. The affected row count is
        kept on `rowcount`.
        """
        if not sql:
            return False
        try:
            self.rowcount = self._modify(sql, params)
        except StoreError as err:
            self.rowcount = 0
            self._record_failure(sql, err)
            return False
        self._last_error = None
        logger.debug(f'Statement affected {self.rowcount} rows')
        return True

    def last_insert_id(self) -> Any:
        """Identity assigned by the most recent insert on this connection.
        """
        rows = self.execute(self.strategy.last_insert_id_sql())
        if not rows:
            return None
        return rows[0]['id']

    def last_error(self) -> attrdict | None:
        """Diagnostic for the most recent failed statement, None after a success.
        """
        return self._last_error

    def start_cursor(self, identity: str, sql: str,
                     params: Mapping[str, Any] | None = None) -> bool:
        """Open a streaming select for `identity`, ending any cursor it already holds.
        """
        with self._sessions_lock:
            if identity in self._sessions:
                logger.debug(f'Superseding open cursor for {identity}')
                self.end_cursor(identity)
            if not sql:
                return False

            self._ensure_connection()
            connection, owned = self.strategy.cursor_connection(self)
            try:
                result = self._stream(sql, params, connection)
            except StoreError as err:
                if owned:
                    connection.close()
                self._record_failure(sql, err)
                return False

            self._sessions[identity] = LinearFetchSession(
                identity, result, connection if owned else None)
            self._last_error = None
            return True

    def end_cursor(self, identity: str) -> None:
        """Release the cursor held by `identity`; a no-op when none is open.
        """
        with self._sessions_lock:
            session = self._sessions.pop(identity, None)
        if session is None:
            return
        try:
            session.close()
        except StoreError as e:
            logger.debug(f'Error closing cursor for {identity}: {e}')

    def is_cursor_open(self, identity: str) -> bool:
        with self._sessions_lock:
            return identity in self._sessions

    def next_cursor_row(self, identity: str) -> dict[str, Any] | None:
        """Next row of the cursor held by `identity`.

        None when no cursor is open or the cursor is exhausted.
        """
        with self._sessions_lock:
            session = self._sessions.get(identity)
        if session is None:
            return None
        try:
            return session.fetch()
        except StoreError as err:
            self._record_failure('<cursor fetch>', err)
            return None


@load_options(cls=ConnectorOptions)
def connect(options: ConnectorOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> Connector:
    """Connect to a database and return a Connector

    Args:
        options: Can be:
                - ConnectorOptions object
                - String path to configuration
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        Connector to hand to mapped tables
    """
    if isinstance(options, ConnectorOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=ConnectorOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    engine = get_engine_for_options(options)
    sa_connection = engine.connect()

    return Connector(sa_connection, options)
