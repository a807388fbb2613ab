"""
Fixtures for SQLite integration tests.
"""
import db2obj
import pytest
from tests.fixtures.tables import SCHEMA


@pytest.fixture
def sqlite_conn():
    """In-memory SQLite connector with the test schema and no rows."""
    cn = db2obj.connect({
        'drivername': 'sqlite',
        'database': ':memory:'
    })

    for statement in SCHEMA:
        assert cn.execute_non_query(statement)

    yield cn
    cn.close()


@pytest.fixture
def seeded_conn(sqlite_conn):
    """Test schema with three authors, three books and two reviews."""
    statements = [
        """
        INSERT INTO author (name, email, password) VALUES
        ('Alice', 'alice@example.com', 's3cret'),
        ('Bob', 'bob@example.com', 'hunter2'),
        ('Charlie', NULL, NULL)
        """,
        """
        INSERT INTO book (id, title, author_id, tags, isbn) VALUES
        (1, 'First Light', 1, NULL, '978-0000000001'),
        (2, 'Second Wind', 1, NULL, '978-0000000002'),
        (3, 'Third Rail', 2, NULL, '978-0000000003')
        """,
        """
        INSERT INTO review (id, book_isbn, body) VALUES
        (1, '978-0000000002', 'Gripping'),
        (2, '978-9999999999', 'Orphaned')
        """,
    ]
    for statement in statements:
        assert sqlite_conn.execute_non_query(statement)
    return sqlite_conn
