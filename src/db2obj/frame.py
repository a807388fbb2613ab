"""
Export mapped rows in the connector's configured result shape.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from db2obj.options import pandas_numpy_data_loader

if TYPE_CHECKING:
    from db2obj.connector import Connector
    from db2obj.table import MappedTable

logger = logging.getLogger(__name__)


def to_frame(connector: 'Connector', table_cls: type['MappedTable'],
             rows: Sequence['MappedTable'] | None = None, **kwargs: Any) -> Any:
    """Shape mapped rows with the connector's data loader.

    With the default loader this is a pandas DataFrame, one column per
    registered column in declaration order. Columns flagged EXCLUDE_GET come
    out as None. `rows` defaults to every row of the table.
    """
    if rows is None:
        rows = table_cls.load_all(connector)

    columns = list(table_cls(connector).columns)
    records = [{name: row.get_column_value(name) for name in columns} for row in rows]

    options = getattr(connector, 'options', None)
    data_loader = getattr(options, 'data_loader', None) or pandas_numpy_data_loader
    logger.debug(f'Exporting {len(records)} {table_cls.__name__} rows')
    return data_loader(records, columns, table_name=table_cls.table_name, **kwargs)
