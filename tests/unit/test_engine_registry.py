"""Unit tests for the per-target engine registry."""

from unittest.mock import MagicMock, patch

import pytest

from txn_harness.db import database
from txn_harness.errors import DatabaseNotConfiguredError


@pytest.fixture(autouse=True)
def empty_registry():
    database._engines.clear()
    yield
    database._engines.clear()


def test_unconfigured_target_raises(monkeypatch):
    monkeypatch.delenv("TXN_HARNESS_POSTGRES_URL", raising=False)

    with pytest.raises(DatabaseNotConfiguredError) as excinfo:
        database.get_engine("postgres")

    assert excinfo.value.env_var == "TXN_HARNESS_POSTGRES_URL"
    assert "TXN_HARNESS_POSTGRES_URL" in str(excinfo.value)


@patch("txn_harness.db.database.create_harness_engine")
def test_engine_created_once_per_target(mock_create, monkeypatch):
    monkeypatch.setenv("TXN_HARNESS_POSTGRES_URL", "postgresql+psycopg://u@db/test")
    mock_create.side_effect = lambda url, **kwargs: MagicMock(url=url)

    first = database.get_engine("postgres")
    second = database.get_engine("postgres")
    other = database.get_engine("sqlite")

    assert first is second
    assert other is not first
    assert mock_create.call_count == 2
    mock_create.assert_any_call("postgresql+psycopg://u@db/test", echo=False)


@patch("txn_harness.db.database.create_harness_engine")
def test_dispose_engines(mock_create):
    engine = MagicMock()
    mock_create.return_value = engine
    database.get_engine("integration")

    database.dispose_engines()

    engine.dispose.assert_called_once_with()
    assert database._engines == {}


@patch("txn_harness.db.database.create_engine")
def test_non_sqlite_engines_ping_the_pool(mock_create_engine):
    database.create_harness_engine("postgresql+psycopg://u@db/test", echo=True)

    mock_create_engine.assert_called_once_with(
        "postgresql+psycopg://u@db/test", echo=True, pool_pre_ping=True
    )


@patch("txn_harness.db.database._enable_sqlite_savepoints")
@patch("txn_harness.db.database.create_engine")
def test_sqlite_engines_get_savepoint_support(mock_create_engine, mock_enable):
    database.create_harness_engine("sqlite:///x.sqlite3", connect_args={"timeout": 3})

    mock_create_engine.assert_called_once_with(
        "sqlite:///x.sqlite3", connect_args={"timeout": 3, "check_same_thread": False}
    )
    mock_enable.assert_called_once_with(mock_create_engine.return_value)
