"""
Exporting mapped rows through the connector's data loader.
"""
from db2obj import to_frame
from db2obj.options import iterdict_data_loader
from tests.fixtures.tables import Author, Book


def test_frame_of_all_rows(seeded_conn):
    """Test the default loader builds a DataFrame in column order"""
    df = to_frame(seeded_conn, Author)

    assert list(df.columns) == ['id', 'name', 'email', 'password', 'created']
    assert df['name'].tolist() == ['Alice', 'Bob', 'Charlie']
    assert df['password'].isna().all()


def test_frame_of_selected_rows(seeded_conn):
    """Test serialized columns export decoded"""
    book = Book.find_by_unique_id(seeded_conn, 1)
    book.tags = ['debut']
    assert book.update()

    df = to_frame(seeded_conn, Book, rows=[Book.find_by_unique_id(seeded_conn, 1)])
    assert len(df) == 1
    assert df.loc[0, 'tags'] == ['debut']


def test_frame_of_no_rows_keeps_columns(sqlite_conn):
    """Test an empty table still yields its columns"""
    df = to_frame(sqlite_conn, Book)
    assert list(df.columns) == ['id', 'title', 'author_id', 'tags', 'isbn']
    assert df.empty


def test_configured_loader(seeded_conn):
    """Test the connector's data loader shapes the export"""
    seeded_conn.options.data_loader = iterdict_data_loader

    records = to_frame(seeded_conn, Author, rows=Author.query_where(seeded_conn, 'id = 1'))
    assert records == [{'id': 1, 'name': 'Alice', 'email': 'alice@example.com',
                        'password': None, 'created': records[0]['created']}]


if __name__ == '__main__':
    __import__('pytest').main([__file__])
