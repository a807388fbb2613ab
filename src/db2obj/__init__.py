"""
Object-relational mapping micro-engine.

Declare a table's columns with access flags, then load, insert, update,
delete, follow relations and stream rows through a Connector:

    cn = db2obj.connect({'drivername': 'sqlite', 'database': 'app.db'})
    user = User.find_by_unique_id(cn, 1)
    user.name = 'Alice'
    user.update()
"""
__version__ = '0.1.0'

from db2obj.column import ColumnDescriptor, Flag, deserialize_value
from db2obj.column import serialize_value
from db2obj.connector import Connector, connect
from db2obj.exceptions import ConfigurationError, ConnectionFailure
from db2obj.exceptions import DatabaseError, DuplicateColumnError
from db2obj.exceptions import DuplicateUniqueColumnError
from db2obj.exceptions import MissingUniqueColumnError, NothingToUpdateError
from db2obj.exceptions import UnknownColumnError, UnknownRelationError
from db2obj.frame import to_frame
from db2obj.options import ConnectorOptions
from db2obj.registry import register_table
from db2obj.table import ColumnAccessor, MappedTable

__all__ = [
    'connect',
    'Connector',
    'ConnectorOptions',
    'Flag',
    'ColumnDescriptor',
    'ColumnAccessor',
    'MappedTable',
    'register_table',
    'serialize_value',
    'deserialize_value',
    'to_frame',
    'DatabaseError',
    'ConnectionFailure',
    'ConfigurationError',
    'MissingUniqueColumnError',
    'NothingToUpdateError',
    'DuplicateColumnError',
    'DuplicateUniqueColumnError',
    'UnknownRelationError',
    'UnknownColumnError',
]
