import pathlib
import site

import pytest
from db2obj.connector import dispose_all_engines

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True, scope='session')
def dispose_engines():
    """Dispose every engine created during the run."""
    yield
    dispose_all_engines()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.tables',
    'tests.fixtures.sqlite',
]
