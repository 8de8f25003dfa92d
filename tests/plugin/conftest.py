"""Plugin test fixtures: inner pytest sessions run in subprocesses via pytester."""

from pathlib import Path

import pytest
from sqlalchemy import text

from tests.envs import setup_sqlite_test_env
from txn_harness.config import clear_settings_cache
from txn_harness.db import create_harness_engine

# Conftest used by the inner sessions: the tiny artists/albums schema on
# every configured SQLite target.
INNER_CONFTEST = '''
import pytest
from sqlalchemy import text

from txn_harness.container import get_container

SCHEMA = [
    "CREATE TABLE IF NOT EXISTS artists (id INTEGER PRIMARY KEY, name TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS albums (id INTEGER PRIMARY KEY, title TEXT NOT NULL, "
    "artist_id INTEGER NOT NULL REFERENCES artists(id))",
]

get_container().register_cleanup("integration", ["albums", "artists"])


@pytest.fixture(scope="session", autouse=True)
def schema():
    container = get_container()
    for target in ("integration", "sqlite"):
        with container.get_engine(target).begin() as conn:
            for statement in SCHEMA:
                conn.execute(text(statement))
'''


@pytest.fixture(autouse=True)
def set_plugin_test_env(monkeypatch, tmp_path):
    """Setup environment variables for plugin tests."""
    setup_sqlite_test_env(monkeypatch, tmp_path)
    yield
    clear_settings_cache()


@pytest.fixture
def inner(pytester):
    """pytester with the schema conftest in place."""
    pytester.makeconftest(INNER_CONFTEST)
    return pytester


@pytest.fixture
def count_rows(tmp_path: Path):
    """Count rows in a table of one of the tmp_path SQLite databases."""
    engines = []

    def _count(table: str, database: str = "integration") -> int:
        engine = create_harness_engine(f"sqlite:///{tmp_path / f'{database}.sqlite3'}")
        engines.append(engine)
        with engine.connect() as conn:
            return conn.execute(text(f"SELECT count(*) FROM {table}")).scalar_one()

    yield _count

    for engine in engines:
        engine.dispose()
