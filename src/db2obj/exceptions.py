"""
Exception classes for the mapping engine and its connector.
"""
import re
import sqlite3

import psycopg
import sqlalchemy as sa

RETRYABLE_PATTERNS = [
    # SSL/TLS errors
    r'ssl',
    r'tls',
    # Connection drops
    r'connection.*(closed|reset|refused|lost|terminated|broken)',
    r'server closed',
    r'eof detected',
    r'broken pipe',
    # Timeouts
    r'timeout',
    r'timed out',
    # Network issues
    r'could not connect',
    r'no route to host',
    r'network.*(unreachable|error)',
    # Database unavailable
    r'database.*unavailable',
    r'database is locked',
    r'too many connections',
]

_RETRYABLE_REGEX = re.compile('|'.join(RETRYABLE_PATTERNS), re.IGNORECASE)


def is_retryable_error(exc: BaseException) -> bool:
    """Check if an exception represents a transient error worth retrying.

    Syntax errors, constraint violations and other errors that would fail
    again on the same input are not retryable.

    :param exc: The exception to check.
    :returns: True if the error is likely transient and worth retrying.
    """
    error_msg = str(exc).lower()
    return bool(_RETRYABLE_REGEX.search(error_msg))


class DatabaseError(Exception):
    """Base class for all db2obj errors.
    """


class ConnectionFailure(DatabaseError):
    """The connector has no connection to run a statement on.
    """


class ConfigurationError(DatabaseError):
    """A mapped table is declared in a way that cannot serve the request.
    """


class MissingUniqueColumnError(ConfigurationError):
    """No column carrying the unique id flag is registered.
    """

    def __init__(self, table_name: str) -> None:
        super().__init__(f'Could not locate a unique id column on table {table_name!r}')
        self.table_name = table_name


class NothingToUpdateError(ConfigurationError):
    """Every registered column is excluded from updates.
    """

    def __init__(self, table_name: str) -> None:
        super().__init__(f'Nothing to update on table {table_name!r}')
        self.table_name = table_name


class DuplicateColumnError(ConfigurationError):
    """A column name was registered twice on the same table.
    """


class DuplicateUniqueColumnError(ConfigurationError):
    """A second unique id column was registered on the same table.
    """


class UnknownRelationError(ConfigurationError):
    """A relation target could not be resolved to a mapped table.
    """


class UnknownColumnError(ConfigurationError):
    """A column accessor names a column the table never registers.
    """


DbConnectionError = (
    sa.exc.OperationalError,
    sa.exc.InterfaceError,
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    )

StoreError = (
    sa.exc.SQLAlchemyError,
    psycopg.Error,
    sqlite3.Error,
    )
