"""Database target settings for txn-harness."""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from txn_harness.errors import ConfigurationError

CONFIG_FILE_ENV = "TXN_HARNESS_CONFIG_FILE"
DEFAULT_INTEGRATION_URL = "sqlite:///txn_harness_test.sqlite3"
DEFAULT_SQLITE_URL = "sqlite:///txn_harness_sqlite.sqlite3"

TARGETS = ("integration", "sqlite", "postgres", "mysql", "mssql", "oracle")


def url_env_var(target: str) -> str:
    """Name of the environment variable holding the URL for ``target``."""
    return f"TXN_HARNESS_{target.upper()}_URL"


class DatabaseTargetConfig(BaseModel):
    """Connection details for one target as written in the config file."""

    url: Optional[str] = None
    echo: bool = False
    connect_args: Dict[str, Any] = Field(default_factory=dict)


class DatabaseTarget(BaseModel):
    """Resolved connection details for a named database target."""

    name: str
    url: Optional[str] = None
    echo: bool = False
    connect_args: Dict[str, Any] = Field(default_factory=dict)

    @property
    def env_var(self) -> str:
        return url_env_var(self.name)

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    def engine_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"echo": self.echo}
        if self.connect_args:
            kwargs["connect_args"] = dict(self.connect_args)
        return kwargs


class DBSettings(BaseSettings):
    """Connection strings for every database target the suites can use.

    Environment variables win over the optional TOML config file named by
    ``TXN_HARNESS_CONFIG_FILE``; the file is only needed when a connection
    needs more than a URL (driver ``connect_args`` and similar).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    integration_url: Optional[str] = Field(
        default=DEFAULT_INTEGRATION_URL,
        title="Integration Database URL",
        description="Database used by the shared integration suites.",
        alias="TXN_HARNESS_INTEGRATION_URL",
    )
    sqlite_url: Optional[str] = Field(
        default=DEFAULT_SQLITE_URL,
        title="SQLite URL",
        description="Database used by the SQLite adapter suite.",
        alias="TXN_HARNESS_SQLITE_URL",
    )
    postgres_url: Optional[str] = Field(
        default=None,
        title="PostgreSQL URL",
        description="Database used by the PostgreSQL adapter suite.",
        alias="TXN_HARNESS_POSTGRES_URL",
    )
    mysql_url: Optional[str] = Field(
        default=None,
        title="MySQL URL",
        description="Database used by the MySQL adapter suite.",
        alias="TXN_HARNESS_MYSQL_URL",
    )
    mssql_url: Optional[str] = Field(
        default=None,
        title="SQL Server URL",
        description="Database used by the SQL Server adapter suite.",
        alias="TXN_HARNESS_MSSQL_URL",
    )
    oracle_url: Optional[str] = Field(
        default=None,
        title="Oracle URL",
        description="Database used by the Oracle adapter suite.",
        alias="TXN_HARNESS_ORACLE_URL",
    )
    databases: Dict[str, DatabaseTargetConfig] = Field(
        default_factory=dict,
        title="Config File Databases",
        description="Per-target connection details loaded from the TOML config file.",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        sources = [init_settings, env_settings, dotenv_settings]
        config_file = os.getenv(CONFIG_FILE_ENV)
        if config_file:
            path = Path(config_file)
            if not path.is_file():
                raise ConfigurationError(
                    f"{CONFIG_FILE_ENV} points to a missing file: {config_file}"
                )
            sources.append(TomlConfigSettingsSource(settings_cls, toml_file=path))
        sources.append(file_secret_settings)
        return tuple(sources)

    def target(self, name: str) -> DatabaseTarget:
        """Resolve the connection details for ``name``."""
        if name not in TARGETS:
            raise ConfigurationError(
                f"Unknown database target '{name}'. Expected one of: {', '.join(TARGETS)}"
            )
        field_name = f"{name}_url"
        file_config = self.databases.get(name, DatabaseTargetConfig())
        if field_name in self.model_fields_set:
            url = getattr(self, field_name)
        else:
            url = file_config.url or getattr(self, field_name)
        return DatabaseTarget(
            name=name,
            url=url,
            echo=file_config.echo,
            connect_args=file_config.connect_args,
        )

    def configured_targets(self) -> list[str]:
        return [name for name in TARGETS if self.target(name).is_configured]
