"""Configuration module for txn-harness."""

from functools import lru_cache

from .db_settings import (
    CONFIG_FILE_ENV,
    DEFAULT_INTEGRATION_URL,
    DEFAULT_SQLITE_URL,
    TARGETS,
    DatabaseTarget,
    DatabaseTargetConfig,
    DBSettings,
    url_env_var,
)
from .harness_settings import ISOLATION_MODES, HarnessSettings


@lru_cache()
def get_db_settings() -> DBSettings:
    """Get the database settings singleton."""
    return DBSettings()


@lru_cache()
def get_harness_settings() -> HarnessSettings:
    """Get the harness settings singleton."""
    return HarnessSettings()


def clear_settings_cache() -> None:
    """Forget cached settings so the next lookup re-reads the environment."""
    get_db_settings.cache_clear()
    get_harness_settings.cache_clear()


__all__ = [
    # Classes
    "DatabaseTarget",
    "DatabaseTargetConfig",
    "DBSettings",
    "HarnessSettings",
    # Constants
    "CONFIG_FILE_ENV",
    "DEFAULT_INTEGRATION_URL",
    "DEFAULT_SQLITE_URL",
    "ISOLATION_MODES",
    "TARGETS",
    # Providers
    "clear_settings_cache",
    "get_db_settings",
    "get_harness_settings",
    "url_env_var",
]
