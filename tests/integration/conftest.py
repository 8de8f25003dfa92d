"""Integration test fixtures: the artists/albums schema on the integration target."""

import pytest

from tests.envs import remove_sqlite_file
from tests.fixtures.db.models import Base
from txn_harness.container import get_container


@pytest.fixture(scope="session", autouse=True)
def integration_schema(db_engine):
    """Create the schema once per session; drop it and remove a SQLite file at the end."""
    Base.metadata.create_all(bind=db_engine)
    get_container().register_cleanup("integration", Base.metadata)
    yield
    Base.metadata.drop_all(bind=db_engine)
    remove_sqlite_file(db_engine)
