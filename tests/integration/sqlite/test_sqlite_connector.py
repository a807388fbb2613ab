"""
Connector behaviour against SQLite: reads, writes and failure reporting.
"""
import db2obj
from tests.fixtures.tables import Book


def test_execute_returns_dict_rows(seeded_conn):
    """Test reads come back as name->value mappings"""
    rows = seeded_conn.execute('SELECT id, name FROM author WHERE id = :id', {'id': 2})
    assert rows == [{'id': 2, 'name': 'Bob'}]
    assert seeded_conn.execute('SELECT id FROM author WHERE id = -1') == []


def test_execute_non_query_rowcount(seeded_conn):
    """Test success is reported even when no row is affected"""
    assert seeded_conn.execute_non_query('UPDATE book SET title = :t WHERE id = -1', {'t': 'x'})
    assert seeded_conn.rowcount == 0

    assert seeded_conn.execute_non_query('UPDATE book SET tags = NULL')
    assert seeded_conn.rowcount == 3


def test_null_parameter_binding(sqlite_conn):
    """Test None binds as NULL"""
    assert sqlite_conn.execute_non_query(
        'INSERT INTO author (name, email) VALUES (:name, :email)', {'name': 'Dee', 'email': None})
    rows = sqlite_conn.execute('SELECT email FROM author WHERE email IS NULL')
    assert rows == [{'email': None}]


def test_failed_read_reports_error(seeded_conn):
    """Test a failing read returns None and records the error"""
    assert seeded_conn.execute('SELECT * FROM no_such_table') is None

    error = seeded_conn.last_error()
    assert error.type == 'OperationalError'
    assert 'no_such_table' in error.message
    assert error.sql == 'SELECT * FROM no_such_table'


def test_failed_write_reports_error(seeded_conn):
    """Test constraint violations fail the write without raising"""
    book = Book(seeded_conn)
    book.title = 'Duplicate'
    book.isbn = '978-0000000001'

    assert book.insert() is False
    assert book.id is None
    assert seeded_conn.last_error().type == 'IntegrityError'
    assert seeded_conn.rowcount == 0

    assert Book.count(seeded_conn) == 3
    assert seeded_conn.last_error() is None


def test_last_insert_id(sqlite_conn):
    """Test the identity of the latest insert is readable"""
    assert sqlite_conn.execute_non_query("INSERT INTO author (name) VALUES ('Eve')")
    assert sqlite_conn.last_insert_id() == 1


def test_empty_statement(sqlite_conn):
    """Test an empty statement is rejected without touching the store"""
    calls = sqlite_conn.calls
    assert sqlite_conn.execute('') is None
    assert sqlite_conn.execute_non_query('') is False
    assert sqlite_conn.calls == calls


def test_call_statistics(sqlite_conn):
    """Test every executed statement is counted"""
    calls = sqlite_conn.calls
    sqlite_conn.execute('SELECT 1 AS one')
    sqlite_conn.execute('SELECT 2 AS two')
    assert sqlite_conn.calls == calls + 2
    assert sqlite_conn.time >= 0


def test_context_manager_closes():
    """Test the connector closes its connection on exit"""
    with db2obj.connect({'drivername': 'sqlite', 'database': ':memory:'}) as cn:
        assert cn.dialect == 'sqlite'
        assert cn.execute('SELECT 1 AS one') == [{'one': 1}]
    assert cn.sa_connection.closed


if __name__ == '__main__':
    __import__('pytest').main([__file__])
