"""
Row lifecycle against an in-memory SQLite store.
"""
import pytest
from db2obj import MissingUniqueColumnError
from tests.fixtures.tables import Author, Book, Setting


def test_insert_assigns_identity_and_store_defaults(sqlite_conn):
    """Test insert writes back the store-assigned id"""
    author = Author(sqlite_conn)
    author.name = 'Alice'

    assert author.insert() is True
    assert author.id == 1
    assert author.changed_columns() == []

    loaded = Author.find_by_unique_id(sqlite_conn, author.id)
    assert loaded.name == 'Alice'
    assert loaded.email is None
    assert loaded.created is not None


def test_insert_with_explicit_id(sqlite_conn):
    """Test a caller-supplied id is kept"""
    book = Book(sqlite_conn)
    book.id = 10
    book.title = 'Dune'

    assert book.insert()
    assert book.id == 10
    assert Book.count(sqlite_conn) == 1


def test_insert_without_unique_column(sqlite_conn):
    """Test tables without an identity insert and load"""
    setting = Setting(sqlite_conn)
    setting.key = 'theme'
    setting.value = 'dark'

    assert setting.insert()
    assert [(s.key, s.value) for s in Setting.load_all(sqlite_conn)] == [('theme', 'dark')]

    with pytest.raises(MissingUniqueColumnError):
        setting.update()


def test_serialized_column_round_trip(sqlite_conn):
    """Test structured values survive the store as encoded text"""
    book = Book(sqlite_conn)
    book.id = 1
    book.title = 'Dune'
    book.tags = {'genre': ['sci-fi', 'classic'], 'pages': 412}
    assert book.insert()

    raw = sqlite_conn.execute('SELECT tags FROM book WHERE id = :id', {'id': 1})
    assert isinstance(raw[0]['tags'], str)
    assert raw[0]['tags'] != str(book.tags)

    loaded = Book.find_by_unique_id(sqlite_conn, 1)
    assert loaded.tags == {'genre': ['sci-fi', 'classic'], 'pages': 412}


def test_update_writes_changes(seeded_conn):
    """Test update persists every updatable column"""
    book = Book.find_by_unique_id(seeded_conn, 3)
    book.title = 'Third Rail, Revised'
    book.tags = ['revised']

    assert book.update() is True

    loaded = Book.find_by_unique_id(seeded_conn, 3)
    assert loaded.title == 'Third Rail, Revised'
    assert loaded.tags == ['revised']
    assert loaded.isbn == '978-0000000003'


def test_update_keeps_hidden_values(seeded_conn):
    """Test hidden columns are written back unchanged"""
    alice = Author.find_by_unique_id(seeded_conn, 1)
    assert alice.password is None

    alice.email = 'alice@new.example.com'
    assert alice.update()

    rows = seeded_conn.execute('SELECT email, password FROM author WHERE id = 1')
    assert rows == [{'email': 'alice@new.example.com', 'password': 's3cret'}]


def test_update_single_column(seeded_conn):
    """Test only the named column is written"""
    book = Book.find_by_unique_id(seeded_conn, 1)
    book.title = 'Changed'
    book.isbn = 'not-written'

    assert book.update_single_column('title')

    loaded = Book.find_by_unique_id(seeded_conn, 1)
    assert loaded.title == 'Changed'
    assert loaded.isbn == '978-0000000001'


def test_delete(seeded_conn):
    """Test delete removes the row and empties the instance"""
    book = Book.find_by_unique_id(seeded_conn, 2)

    assert book.delete() is True
    assert book.id is None
    assert Book.find_by_unique_id(seeded_conn, 2) is None
    assert Book.count(seeded_conn) == 2


def test_load_from_column_miss_leaves_row(seeded_conn):
    """Test a failed load does not touch existing values"""
    book = Book.find_by_unique_id(seeded_conn, 1)

    assert book.load_from_column('isbn', 'missing') is False
    assert book.title == 'First Light'


def test_query_helpers(seeded_conn):
    """Test set-based queries"""
    books = Book.query_where(seeded_conn, 'author_id = :author ORDER BY id', {'author': 1})
    assert [b.title for b in books] == ['First Light', 'Second Wind']

    assert Author.find_by_column(seeded_conn, 'name', 'Bob').id == 2
    assert Author.find_by_column(seeded_conn, 'name', 'Nobody') is None
    assert len(Author.load_all(seeded_conn)) == 3
    assert Author.count(seeded_conn) == 3


def test_query_where_null_predicate(seeded_conn):
    """Test NULL values load as None"""
    rows = Author.query_where(seeded_conn, 'email IS NULL')
    assert [r.name for r in rows] == ['Charlie']
    assert rows[0].email is None


if __name__ == '__main__':
    __import__('pytest').main([__file__])
