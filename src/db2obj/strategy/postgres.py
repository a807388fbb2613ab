"""
PostgreSQL-specific strategy implementation.

Linear fetches use a server-side cursor (``stream_results``) on a dedicated
connection, since a commit on the connector's own connection would close a
named cursor mid-stream.
"""
import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from db2obj.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from db2obj.connector import Connector
    from db2obj.options import ConnectorOptions

logger = logging.getLogger(__name__)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'ConnectorOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        if options.appname:
            query['application_name'] = options.appname

        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port,
            database=options.database,
            query=query
        )

    def get_engine_kwargs(self, options: 'ConnectorOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for PostgreSQL."""
        return {}

    def last_insert_id_sql(self) -> str:
        return 'SELECT lastval() AS id'

    def cursor_connection(self, cn: 'Connector') -> tuple[sa.engine.Connection, bool]:
        logger.debug('Opening dedicated connection for server-side cursor')
        connection = cn.engine.connect().execution_options(stream_results=True)
        return connection, True

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']
