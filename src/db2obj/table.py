"""
Mapped tables: one instance represents one row of a relational table.

A concrete table names its store table, declares its columns in
`define_columns()`, and optionally exposes them as typed attributes with
`ColumnAccessor`:

    @register_table('user')
    class User(MappedTable):
        table_name = 'users'

        id = ColumnAccessor()
        name = ColumnAccessor()

        def define_columns(self):
            self.add_column('id', Flag.UNIQUE_ID | Flag.EXCLUDE_SET | Flag.EXCLUDE_UPDATE)
            self.add_column('name')

Every read and write routes through the instance's Connector. Row-level
operations return True/False (or the row/None); a table declared without the
columns an operation needs raises a ConfigurationError instead.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Self

from db2obj.column import ColumnDescriptor, Flag
from db2obj.exceptions import DuplicateColumnError, DuplicateUniqueColumnError
from db2obj.exceptions import MissingUniqueColumnError, NothingToUpdateError
from db2obj.exceptions import UnknownColumnError
from db2obj.registry import resolve_relation
from db2obj.sql import UNIQUE_PARAM, VALUE_PARAM, bind_params
from db2obj.sql import build_count_sql, build_delete_sql, build_insert_sql
from db2obj.sql import build_select_by_column_sql, build_select_sql
from db2obj.sql import build_update_sql

if TYPE_CHECKING:
    from db2obj.connector import Connector

__all__ = ['MappedTable', 'ColumnAccessor']

logger = logging.getLogger(__name__)

_MISSING = object()


class ColumnAccessor:
    """Attribute bound to one column when the owning class is created.

    Reads go through `get_column_value` and writes through
    `set_column_value`, so access flags apply. The column defaults to the
    attribute name. Constructing the table fails if the column is not
    registered.
    """

    def __init__(self, column: str | None = None) -> None:
        self.column = column

    def __set_name__(self, owner: type, name: str) -> None:
        if self.column is None:
            self.column = name

    def __get__(self, instance: 'MappedTable | None', owner: type) -> Any:
        if instance is None:
            return self
        return instance.get_column_value(self.column)

    def __set__(self, instance: 'MappedTable', value: Any) -> None:
        instance.set_column_value(self.column, value)


class MappedTable(ABC):
    """Abstract row representation keyed by a registered set of columns.
    """

    table_name: ClassVar[str] = ''
    identifier: ClassVar[str | None] = None

    def __init__(self, connector: 'Connector') -> None:
        self.connector = connector
        self.columns: dict[str, ColumnDescriptor] = {}
        self.unique_column: ColumnDescriptor | None = None
        self.define_columns()
        self._check_accessors()

    def __repr__(self) -> str:
        visible = {name: self.get_column_value(name) for name in self.columns}
        return f'{type(self).__name__}({visible!r})'

    @abstractmethod
    def define_columns(self) -> None:
        """Register this table's columns with the add_column builders."""

    def _check_accessors(self) -> None:
        """Fail on accessors naming columns the table never registers.

        Raises
            UnknownColumnError: If a ColumnAccessor names an unregistered column
        """
        for klass in type(self).__mro__:
            for attr, member in vars(klass).items():
                if isinstance(member, ColumnAccessor) and member.column not in self.columns:
                    raise UnknownColumnError(
                        f'{type(self).__name__}.{attr} maps column {member.column!r}, '
                        f'which {self.table_name!r} does not register')

    # Registration

    def add_column_element(self, descriptor: ColumnDescriptor) -> ColumnDescriptor:
        """Register a descriptor.

        Raises
            DuplicateColumnError: If the name is already registered
            DuplicateUniqueColumnError: If a unique column is already registered
            UnknownRelationError: If the relation target does not resolve
        """
        if descriptor.name in self.columns:
            raise DuplicateColumnError(
                f'Column {descriptor.name!r} registered twice on {self.table_name!r}')
        if descriptor.is_unique and self.unique_column is not None:
            raise DuplicateUniqueColumnError(
                f'Column {descriptor.name!r} cannot be the unique id of {self.table_name!r}: '
                f'{self.unique_column.name!r} already is')
        if descriptor.has_relation:
            descriptor.set_relation(resolve_relation(descriptor.relation))

        self.columns[descriptor.name] = descriptor
        if descriptor.is_unique:
            self.unique_column = descriptor
        return descriptor

    def add_column(self, name: str, flags: int = Flag.NONE,
                   relation: 'type[MappedTable] | str | None' = None) -> ColumnDescriptor:
        return self.add_column_element(ColumnDescriptor(name, flags, relation))

    def add_relation_column(self, name: str, relation: 'type[MappedTable] | str',
                            relation_column: str, flags: int = Flag.NONE) -> ColumnDescriptor:
        """Register a column whose relation matches `relation_column` on the
        target instead of the target's unique id.
        """
        descriptor = ColumnDescriptor(name, flags, relation)
        descriptor.set_relation_column(relation_column)
        return self.add_column_element(descriptor)

    # Accessors

    def get_column_value(self, name: str) -> Any:
        """Visible value of a column; None if unknown or EXCLUDE_GET.
        """
        column = self.columns.get(name)
        if column is None or column.has_flag(Flag.EXCLUDE_GET):
            return None
        return column.get_value()

    def set_column_value(self, name: str, value: Any) -> None:
        """Set a column unless it is unknown or write-protected.

        An EXCLUDE_SET column accepts exactly one value, its initial one;
        later writes are dropped.
        """
        column = self.columns.get(name)
        if column is None:
            logger.debug(f'Ignoring set of unknown column {name!r} on {self.table_name!r}')
            return
        if column.has_flag(Flag.EXCLUDE_SET) and not column.needs_initial_value:
            logger.debug(f'Dropping write to protected column {name!r} on {self.table_name!r}')
            return
        column.set_value(value)

    def force_set_column_value(self, name: str, value: Any, ignore_flags: bool = False) -> None:
        """Set a column regardless of EXCLUDE_SET; used by load paths.
        """
        column = self.columns.get(name)
        if column is None:
            return
        column.set_value(value, ignore_flags)

    def to_row_map(self) -> dict[str, Any]:
        """Every column's descriptor value, in declaration order."""
        return {name: column.get_value() for name, column in self.columns.items()}

    def load_from_row_map(self, row: Mapping[str, Any]) -> None:
        """Store raw values from a result row for every known column.

        Values are kept in their stored form, so serialized columns decode on
        the next read.
        """
        for name, value in row.items():
            if name in self.columns:
                self.force_set_column_value(name, value, ignore_flags=True)

    def changed_columns(self) -> list[str]:
        """Columns written since the last load, insert or update."""
        return [name for name, column in self.columns.items() if column.changed]

    def _mark_clean(self) -> None:
        for column in self.columns.values():
            column.changed = False

    def _require_unique(self) -> ColumnDescriptor:
        if self.unique_column is None:
            raise MissingUniqueColumnError(self.table_name)
        return self.unique_column

    # Row operations

    def load_from_column(self, name: str, value: Any = _MISSING) -> bool:
        """Load the first row whose `name` column equals `value`.

        `value` defaults to the column's current stored value. Returns False,
        leaving the row untouched, when the column is unknown or no row
        matches.
        """
        column = self.columns.get(name) if name else None
        if column is None:
            return False
        if value is _MISSING:
            value = column.get_value(ignore_flags=True)

        sql = build_select_by_column_sql(
            self.table_name, self.connector.dialect, list(self.columns), name)
        rows = self.connector.execute(sql, {VALUE_PARAM: value})
        if not rows:
            return False

        self.load_from_row_map(rows[0])
        self._mark_clean()
        return True

    def load_from_descriptor(self, descriptor: ColumnDescriptor) -> bool:
        """Load the first row whose column matches the descriptor's name and
        stored value.
        """
        return self.load_from_column(descriptor.name, descriptor.get_value(ignore_flags=True))

    def load_from_unique_id(self, unique_id: Any) -> bool:
        unique = self._require_unique()
        return self.load_from_column(unique.name, unique_id)

    def insert(self) -> bool:
        """Insert this row, leaving out columns whose stored value is None.

        On success the store-assigned identity is written back into the
        unique column.
        """
        values = {
            name: column.get_value(ignore_flags=True)
            for name, column in self.columns.items()
            if column.value is not None
            }
        sql = build_insert_sql(self.table_name, self.connector.dialect, list(values))
        if not self.connector.execute_non_query(sql, bind_params(values)):
            return False

        if self.unique_column is not None:
            new_id = self.connector.last_insert_id()
            if new_id is None:
                logger.warning(f'No identity returned after insert into {self.table_name!r}')
            else:
                self.force_set_column_value(self.unique_column.name, new_id)
        self._mark_clean()
        return True

    def update(self) -> bool:
        """Write every column not flagged EXCLUDE_UPDATE, keyed on the unique id.

        Raises
            MissingUniqueColumnError: If no unique column is registered
            NothingToUpdateError: If every column is EXCLUDE_UPDATE
        """
        unique = self._require_unique()
        values = {
            name: column.get_value(ignore_flags=True)
            for name, column in self.columns.items()
            if not column.has_flag(Flag.EXCLUDE_UPDATE)
            }
        if not values:
            raise NothingToUpdateError(self.table_name)

        sql = build_update_sql(self.table_name, self.connector.dialect, list(values), unique.name)
        params = bind_params(values)
        params[UNIQUE_PARAM] = unique.get_value(ignore_flags=True)
        ok = self.connector.execute_non_query(sql, params)
        if ok:
            self._mark_clean()
        return ok

    def update_single_column(self, name: str) -> bool:
        """Write one column; False if it is unknown or EXCLUDE_UPDATE.
        """
        column = self.columns.get(name)
        if column is None or column.has_flag(Flag.EXCLUDE_UPDATE):
            return False
        unique = self._require_unique()

        values = {name: column.get_value(ignore_flags=True)}
        sql = build_update_sql(self.table_name, self.connector.dialect, [name], unique.name)
        params = bind_params(values)
        params[UNIQUE_PARAM] = unique.get_value(ignore_flags=True)
        ok = self.connector.execute_non_query(sql, params)
        if ok:
            column.changed = False
        return ok

    def delete(self) -> bool:
        """Delete this row by unique id.

        Every column is reset to its unset state whether or not the delete
        succeeded.
        """
        unique = self._require_unique()
        sql = build_delete_sql(self.table_name, self.connector.dialect, unique.name)
        ok = self.connector.execute_non_query(sql, {UNIQUE_PARAM: unique.get_value(ignore_flags=True)})
        for column in self.columns.values():
            column.reset()
        return ok

    def get_column_relation(self, name: str) -> 'MappedTable | None':
        """Load the row this column points at; None if there is no relation
        or no matching row. Queries the store on every call.
        """
        column = self.columns.get(name)
        if column is None or not column.has_relation:
            return None

        target = resolve_relation(column.relation)(self.connector)
        value = column.get_value(ignore_flags=True)
        if column.relation_column is None:
            found = target.load_from_unique_id(value)
        else:
            key = ColumnDescriptor(column.relation_column)
            key.set_value(value, ignore_flags=True)
            found = target.load_from_descriptor(key)
        return target if found else None

    # Set-based queries

    @classmethod
    def cursor_identity(cls) -> str:
        """Key of this table's linear-fetch session on a connector."""
        return cls.__dict__.get('identifier') or f'{cls.__module__}.{cls.__qualname__}'

    @classmethod
    def _select_all_sql(cls, connector: 'Connector', where: str | None = None) -> str:
        prototype = cls(connector)
        return build_select_sql(prototype.table_name, connector.dialect,
                                list(prototype.columns), where=where)

    @classmethod
    def _from_row(cls, connector: 'Connector', row: Mapping[str, Any]) -> Self:
        obj = cls(connector)
        obj.load_from_row_map(row)
        obj._mark_clean()
        return obj

    @classmethod
    def query_where(cls, connector: 'Connector', predicate: str,
                    params: Mapping[str, Any] | None = None) -> list[Self]:
        """Rows matching `predicate`, a SQL condition with ``:name`` placeholders.

        Only `params` are bound; the predicate text is used as given.
        """
        rows = connector.execute(cls._select_all_sql(connector, where=predicate), params)
        return [cls._from_row(connector, row) for row in rows or []]

    @classmethod
    def find_by_column(cls, connector: 'Connector', name: str, value: Any) -> Self | None:
        obj = cls(connector)
        return obj if obj.load_from_column(name, value) else None

    @classmethod
    def find_by_unique_id(cls, connector: 'Connector', unique_id: Any) -> Self | None:
        obj = cls(connector)
        return obj if obj.load_from_unique_id(unique_id) else None

    @classmethod
    def load_all(cls, connector: 'Connector') -> list[Self]:
        rows = connector.execute(cls._select_all_sql(connector))
        return [cls._from_row(connector, row) for row in rows or []]

    @classmethod
    def count(cls, connector: 'Connector') -> int:
        prototype = cls(connector)
        unique = prototype._require_unique()
        rows = connector.execute(build_count_sql(prototype.table_name, connector.dialect, unique.name))
        if not rows:
            return 0
        return int(rows[0]['total'])

    # Linear fetch

    @classmethod
    def start_all(cls, connector: 'Connector') -> bool:
        """Open this table's cursor over every row, replacing any open one."""
        return connector.start_cursor(cls.cursor_identity(), cls._select_all_sql(connector))

    @classmethod
    def start_where(cls, connector: 'Connector', predicate: str,
                    params: Mapping[str, Any] | None = None) -> bool:
        sql = cls._select_all_sql(connector, where=predicate)
        return connector.start_cursor(cls.cursor_identity(), sql, params)

    @classmethod
    def start_custom(cls, connector: 'Connector', sql: str,
                     params: Mapping[str, Any] | None = None) -> bool:
        """Open this table's cursor over arbitrary SQL.

        Result columns are matched to registered columns by name; combine a
        partial projection with ``next_row(load_by_unique_id_only=True)``.
        """
        return connector.start_cursor(cls.cursor_identity(), sql, params)

    @classmethod
    def next_row(cls, connector: 'Connector', load_by_unique_id_only: bool = False) -> Self | None:
        """Next row of this table's cursor, or None when exhausted or not started.

        With `load_by_unique_id_only`, the row is re-read from the table by the
        unique id found in the cursor row.
        """
        identity = cls.cursor_identity()
        if not connector.is_cursor_open(identity):
            return None
        row = connector.next_cursor_row(identity)
        if row is None:
            return None

        if not load_by_unique_id_only:
            return cls._from_row(connector, row)

        obj = cls(connector)
        unique = obj._require_unique()
        if unique.name in row and obj.load_from_unique_id(row[unique.name]):
            return obj
        logger.debug(f'Could not reload {identity} row by {unique.name!r}, using cursor row')
        return cls._from_row(connector, row)

    @classmethod
    def end(cls, connector: 'Connector') -> None:
        connector.end_cursor(cls.cursor_identity())

    @classmethod
    def iter_rows(cls, connector: 'Connector', predicate: str | None = None,
                  params: Mapping[str, Any] | None = None,
                  load_by_unique_id_only: bool = False) -> Iterator[Self]:
        """Stream rows through this table's cursor, ending it when done.
        """
        if predicate:
            started = cls.start_where(connector, predicate, params)
        else:
            started = cls.start_all(connector)
        if not started:
            return
        try:
            while True:
                obj = cls.next_row(connector, load_by_unique_id_only)
                if obj is None:
                    break
                yield obj
        finally:
            cls.end(connector)
