import pytest

from tests.envs import setup_sqlite_test_env
from txn_harness.config import clear_settings_cache


@pytest.fixture(autouse=True)
def set_bin_test_env(monkeypatch, tmp_path):
    """Setup environment variables for command-line tests."""
    setup_sqlite_test_env(monkeypatch, tmp_path)
    yield
    clear_settings_cache()
