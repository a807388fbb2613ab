"""
SQL statement synthesis with named parameter placeholders.

Every statement produced here binds values by name (``:name``), which is the
form ``sqlalchemy.text`` understands for all dialects. Identifiers are quoted;
predicate text supplied by callers is inserted verbatim.
"""
import re
from collections.abc import Iterable, Sequence

UNIQUE_PARAM = 'uniq_registered_id'
VALUE_PARAM = 'val'

_NON_WORD = re.compile(r'\W')


def quote_identifier(identifier: str, dialect: str = 'postgresql') -> str:
    """Safely quote database identifiers.

    Parameters
        identifier: Table or column name
        dialect: Database dialect

    Returns
        Quoted identifier

    Raises
        ValueError: If dialect is unsupported
    """
    if dialect in {'postgresql', 'sqlite'}:
        return '"' + identifier.replace('"', '""') + '"'

    raise ValueError(f'Unknown dialect: {dialect}')


def param_name(column: str) -> str:
    """Placeholder name for a column, reduced to word characters.
    """
    name = _NON_WORD.sub('_', column)
    if not name or name[0].isdigit():
        name = f'c_{name}'
    return name


def bind_names(columns: Iterable[str]) -> dict[str, str]:
    """Map each column to a distinct placeholder name.
    """
    names: dict[str, str] = {}
    taken = {UNIQUE_PARAM, VALUE_PARAM}
    for col in columns:
        name = base = param_name(col)
        i = 1
        while name in taken:
            name = f'{base}_{i}'
            i += 1
        taken.add(name)
        names[col] = name
    return names


def _column_list(columns: Sequence[str], dialect: str) -> str:
    return ', '.join(quote_identifier(col, dialect) for col in columns)


def build_select_sql(table: str, dialect: str, columns: Sequence[str],
                     where: str | None = None, limit: int | None = None) -> str:
    """Generate a SELECT statement over the given columns.

    Args:
        table: Table name
        dialect: Database dialect
        columns: Columns to select, in declaration order
        where: WHERE clause (without 'WHERE' keyword)
        limit: LIMIT value

    Returns
        SQL query string
    """
    sql = f'SELECT {_column_list(columns, dialect)} FROM {quote_identifier(table, dialect)}'

    if where:
        sql += f' WHERE {where}'

    if limit is not None:
        sql += f' LIMIT {int(limit)}'

    return sql


def build_select_by_column_sql(table: str, dialect: str, columns: Sequence[str],
                               column: str) -> str:
    """Single-row lookup on one column, bound as ``:val``.
    """
    where = f'{quote_identifier(column, dialect)} = :{VALUE_PARAM}'
    return build_select_sql(table, dialect, columns, where=where, limit=1)


def build_insert_sql(table: str, dialect: str, columns: Sequence[str]) -> str:
    """Generate an INSERT statement with one named placeholder per column.

    An empty column list produces ``DEFAULT VALUES`` so the store fills every
    column from its definition.
    """
    quoted_table = quote_identifier(table, dialect)
    if not columns:
        return f'INSERT INTO {quoted_table} DEFAULT VALUES'

    names = bind_names(columns)
    placeholders = ', '.join(f':{names[col]}' for col in columns)
    return f'INSERT INTO {quoted_table} ({_column_list(columns, dialect)}) VALUES ({placeholders})'


def build_update_sql(table: str, dialect: str, columns: Sequence[str],
                     unique_column: str) -> str:
    """Generate an UPDATE statement keyed on the unique column.

    The key value binds as ``:uniq_registered_id`` so it never collides with
    a SET placeholder, even when the unique column is itself updated.
    """
    names = bind_names(columns)
    assignments = ', '.join(
        f'{quote_identifier(col, dialect)} = :{names[col]}' for col in columns)
    return (f'UPDATE {quote_identifier(table, dialect)} SET {assignments} '
            f'WHERE {quote_identifier(unique_column, dialect)} = :{UNIQUE_PARAM}')


def build_delete_sql(table: str, dialect: str, unique_column: str) -> str:
    """Generate a DELETE statement keyed on the unique column.
    """
    return (f'DELETE FROM {quote_identifier(table, dialect)} '
            f'WHERE {quote_identifier(unique_column, dialect)} = :{UNIQUE_PARAM}')


def build_count_sql(table: str, dialect: str, unique_column: str) -> str:
    """Count the rows of a table through its unique column.
    """
    return (f'SELECT COUNT({quote_identifier(unique_column, dialect)}) AS total '
            f'FROM {quote_identifier(table, dialect)}')


def bind_params(values: dict[str, object]) -> dict[str, object]:
    """Rekey a column->value mapping to the placeholder names used above.
    """
    names = bind_names(values)
    return {names[col]: val for col, val in values.items()}
