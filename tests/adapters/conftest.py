"""Adapter suite fixtures: the test schema on the target of each adapter class."""

import pytest

from tests.envs import remove_sqlite_file
from tests.fixtures.db.models import Base
from txn_harness.container import get_container


@pytest.fixture(scope="class", autouse=True)
def adapter_schema(request):
    """Create the schema on the class's ``target`` and drop it afterwards."""
    engine = get_container().get_engine(request.cls.target)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    remove_sqlite_file(engine)
