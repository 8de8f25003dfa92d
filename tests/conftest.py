"""Shared test fixtures for all test categories."""

from pathlib import Path
from typing import Callable, Iterator, List

import pytest
from sqlalchemy.engine import Engine

from tests.fixtures.db.models import Base
from txn_harness.db import create_harness_engine


@pytest.fixture
def metadata():
    """The artists/albums schema."""
    return Base.metadata


@pytest.fixture
def sqlite_engine_factory(tmp_path: Path) -> Iterator[Callable[[str], Engine]]:
    """
    Factory for file-based SQLite engines with the test schema created.

    Each call creates a separate database file under tmp_path; engines are
    disposed at teardown.
    """
    engines: List[Engine] = []

    def _create(name: str = "test") -> Engine:
        engine = create_harness_engine(f"sqlite:///{tmp_path / f'{name}.sqlite3'}")
        Base.metadata.create_all(bind=engine)
        engines.append(engine)
        return engine

    yield _create

    for engine in engines:
        engine.dispose()


@pytest.fixture
def sqlite_engine(sqlite_engine_factory) -> Engine:
    """A single file-based SQLite engine with the test schema."""
    return sqlite_engine_factory("test")
