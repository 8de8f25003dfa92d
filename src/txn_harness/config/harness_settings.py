"""Behaviour flags for the txn-harness pytest plugin and suite runner."""

from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from txn_harness.errors import ConfigurationError

ISOLATION_MODES = ("transaction", "cleanup")


class HarnessSettings(BaseSettings):
    """The configurable flags of the harness."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    isolation: str = Field(
        default="transaction",
        title="Isolation Mode",
        description=(
            "How tests are isolated: 'transaction' rolls back a per-test "
            "transaction, 'cleanup' deletes table rows after each test."
        ),
        alias="TXN_HARNESS_ISOLATION",
    )
    savepoint_sessions: bool = Field(
        default=False,
        title="Savepoint Sessions",
        description="Let db_session fixtures commit and roll back through savepoints.",
        alias="TXN_HARNESS_SAVEPOINT_SESSIONS",
    )
    no_pending: bool = Field(
        default=False,
        title="Ignore Pending Markers",
        description="Run tests marked pending as ordinary tests.",
        alias="TXN_HARNESS_NO_PENDING",
    )
    warn_skipped: bool = Field(
        default=False,
        title="Warn On Skipped Tests",
        description="Emit a warning and a terminal summary listing skipped tests.",
        alias="TXN_HARNESS_WARN_SKIPPED",
    )
    isolate_all: bool = Field(
        default=False,
        title="Isolate All Tests",
        description="Apply database isolation to every test, not only those marked isolate_db.",
        alias="TXN_HARNESS_ISOLATE_ALL",
    )
    adapter_extra: Optional[Path] = Field(
        default=None,
        title="Adapter Extra File",
        description="Python file loaded before adapter-specific suites run.",
        alias="TXN_HARNESS_ADAPTER_EXTRA",
    )
    log_level: str = Field(
        default="WARNING",
        title="Log Level",
        description="Level applied to the txn_harness logger.",
        alias="TXN_HARNESS_LOG_LEVEL",
    )

    @field_validator("isolation", mode="before")
    @classmethod
    def validate_isolation(cls, value: Any) -> str:
        """Normalise and check the isolation mode."""
        mode = str(value).strip().lower()
        if mode not in ISOLATION_MODES:
            raise ConfigurationError(
                f"TXN_HARNESS_ISOLATION must be one of {', '.join(ISOLATION_MODES)}, got '{value}'"
            )
        return mode

    @field_validator(
        "savepoint_sessions", "no_pending", "warn_skipped", "isolate_all", mode="before"
    )
    @classmethod
    def parse_flag(cls, value: Any) -> bool:
        """Accept the usual truthy strings for flags."""
        if isinstance(value, str):
            return value.strip().lower() in {"true", "1", "yes", "on"}
        return bool(value)

    @field_validator("adapter_extra", mode="before")
    @classmethod
    def validate_adapter_extra(cls, value: Any) -> Optional[Path]:
        """Empty strings mean no extra file."""
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return Path(value)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalise_log_level(cls, value: Any) -> str:
        return str(value).strip().upper()
