"""Multi-database transactional wrapping over two SQLite files."""

import pytest
from sqlalchemy import insert

from tests.fixtures.db.factories import count_rows
from tests.fixtures.db.models import Artist
from txn_harness.isolation import TransactionalWrapper, TransactionIsolation


@pytest.fixture
def two_engines(sqlite_engine_factory):
    return sqlite_engine_factory("primary"), sqlite_engine_factory("replica")


def _counts(engines):
    counts = []
    for engine in engines:
        with engine.connect() as conn:
            counts.append(count_rows(conn, Artist))
    return counts


def test_both_databases_rolled_back_after_failure(two_engines):
    with pytest.raises(AssertionError, match="after both writes"):
        with TransactionIsolation(two_engines).isolate() as (primary, replica):
            primary.execute(insert(Artist.__table__).values(name="Ornette"))
            replica.execute(insert(Artist.__table__).values(name="Coleman"))
            raise AssertionError("after both writes")

    assert _counts(two_engines) == [0, 0]


def test_wrapper_decorator_rolls_back_both(two_engines):
    primary, replica = (engine.connect() for engine in two_engines)
    try:
        wrapper = TransactionalWrapper(primary, replica)

        @wrapper
        def body(name):
            primary.execute(insert(Artist.__table__).values(name=name))
            replica.execute(insert(Artist.__table__).values(name=name))
            return count_rows(primary, Artist) + count_rows(replica, Artist)

        assert body("Yusef Lateef") == 2
        assert count_rows(primary, Artist) == 0
        assert count_rows(replica, Artist) == 0
    finally:
        primary.close()
        replica.close()
