"""Unit tests for the transaction and cleanup isolation strategies."""

import logging
from unittest.mock import MagicMock, patch

import pytest

from txn_harness.isolation import CleanupIsolation, TransactionIsolation


@pytest.fixture(autouse=True)
def mock_event():
    """Mocked connections carry no SQLAlchemy event dispatch."""
    with patch("txn_harness.isolation.transaction.event") as mock:
        yield mock


def make_engine(name):
    engine = MagicMock(name=name)
    connection = engine.connect.return_value.__enter__.return_value
    connection.begin.return_value.is_active = True
    return engine, connection


class TestTransactionIsolation:
    def test_requires_engines(self):
        with pytest.raises(ValueError):
            TransactionIsolation([])

    def test_yields_one_connection_per_engine_and_rolls_back(self):
        (first, first_conn), (second, second_conn) = make_engine("a"), make_engine("b")

        with TransactionIsolation([first, second]).isolate() as connections:
            assert connections == [first_conn, second_conn]

        first_conn.begin.return_value.rollback.assert_called_once_with()
        second_conn.begin.return_value.rollback.assert_called_once_with()
        first.connect.return_value.__exit__.assert_called_once()
        second.connect.return_value.__exit__.assert_called_once()

    def test_test_failure_propagates_and_connections_close(self):
        engine, connection = make_engine("a")

        with pytest.raises(AssertionError):
            with TransactionIsolation([engine]).isolate():
                raise AssertionError("failed")

        connection.begin.return_value.rollback.assert_called_once_with()
        engine.connect.return_value.__exit__.assert_called_once()

    def test_connect_failure_closes_earlier_connections(self):
        (first, _), (second, _) = make_engine("a"), make_engine("b")
        second.connect.side_effect = RuntimeError("could not connect")

        with pytest.raises(RuntimeError, match="could not connect"):
            with TransactionIsolation([first, second]).isolate():
                pass

        first.connect.return_value.__exit__.assert_called_once()


class TestCleanupIsolation:
    def test_cleans_after_passing_test(self):
        cleaners = [MagicMock(), MagicMock()]

        with CleanupIsolation(cleaners).isolate() as handle:
            assert handle is None
            cleaners[0].clean.assert_not_called()

        cleaners[0].clean.assert_called_once_with()
        cleaners[1].clean.assert_called_once_with()

    def test_cleans_after_failing_test_and_reports_the_failure(self):
        cleaner = MagicMock()

        with pytest.raises(AssertionError, match="wrong title"):
            with CleanupIsolation([cleaner]).isolate():
                raise AssertionError("wrong title")

        cleaner.clean.assert_called_once_with()

    def test_cleanup_error_after_failing_test_is_logged_not_raised(self, caplog):
        cleaner = MagicMock()
        cleaner.clean.side_effect = RuntimeError("FOREIGN KEY constraint failed")

        with caplog.at_level(logging.WARNING, logger="txn_harness"):
            with pytest.raises(AssertionError, match="wrong title"):
                with CleanupIsolation([cleaner]).isolate():
                    raise AssertionError("wrong title")

        assert "Table cleanup failed" in caplog.text

    def test_cleanup_error_after_passing_test_propagates(self):
        cleaner = MagicMock()
        cleaner.clean.side_effect = RuntimeError("FOREIGN KEY constraint failed")

        with pytest.raises(RuntimeError, match="FOREIGN KEY"):
            with CleanupIsolation([cleaner]).isolate():
                pass
