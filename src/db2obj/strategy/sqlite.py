"""
SQLite-specific strategy implementation.

SQLite keeps a single connection per database handle (an in-memory database
exists only on the connection that created it), so linear fetches stream on
the connector's own connection. The sqlite3 driver tolerates further
statements and commits on that connection while a cursor is pending.
"""
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from db2obj.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from db2obj.connector import Connector
    from db2obj.options import ConnectorOptions

logger = logging.getLogger(__name__)


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'ConnectorOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'ConnectorOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        return {
            'connect_args': {
                'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
            }
        }

    def last_insert_id_sql(self) -> str:
        return 'SELECT last_insert_rowid() AS id'

    def cursor_connection(self, cn: 'Connector') -> tuple[sa.engine.Connection, bool]:
        return cn.sa_connection, False

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']
