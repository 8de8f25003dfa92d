"""Core test fixtures: no live database is used in this directory."""

import pytest

from tests.envs import setup_core_test_env
from txn_harness.config import clear_settings_cache


@pytest.fixture(autouse=True)
def set_core_test_env(monkeypatch):
    """Setup environment variables for core tests."""
    setup_core_test_env(monkeypatch)
    yield
    clear_settings_cache()
