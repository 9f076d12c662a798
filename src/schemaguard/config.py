"""
Configuration system for schemaguard using Pydantic.
"""

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Any, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .access.gate import default_core_tables
from .database.connection import ConnectionConfig
from .exceptions import ConfigurationError, DatabaseConfigurationError


class SettingsStoreConfig(BaseModel):
    """Where the access settings record is persisted."""

    backend: Literal["file", "database"] = Field("file", description="Settings store backend")
    path: str = Field("~/.schemaguard/settings.yaml", description="Settings file (file backend)")
    table: str = Field("schemaguard_options", description="Options table (database backend)")
    key: str = Field("schemaguard_settings", description="Option name of the settings record")


class PreviewConfig(BaseModel):
    """Data preview paging."""

    default_limit: int = Field(100, description="Rows per page when no limit is given")
    max_limit: int = Field(1000, description="Upper bound for the page size")

    @model_validator(mode="after")
    def check_limits(self):
        if self.max_limit < 1:
            raise ValueError("max_limit must be at least 1")
        if not 1 <= self.default_limit <= self.max_limit:
            raise ValueError("default_limit must be between 1 and max_limit")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


def configure_logging(config: LoggingConfig) -> None:
    """Install stream (and optional rotating file) handlers on the package logger."""
    package_logger = logging.getLogger("schemaguard")
    package_logger.setLevel(config.level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    package_logger.addHandler(stream)

    if config.file:
        path = Path(os.path.expanduser(config.file))
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            path, maxBytes=config.max_size, backupCount=config.backup_count
        )
        rotating.setFormatter(formatter)
        package_logger.addHandler(rotating)


class SchemaGuardConfig(BaseSettings):
    """Main schemaguard configuration."""

    # Connection; either a full config or a mysql:// URL
    database: Optional[ConnectionConfig] = Field(None, description="Database connection")
    database_url: Optional[str] = Field(None, description="mysql:// connection URL")

    settings_store: SettingsStoreConfig = Field(
        default_factory=SettingsStoreConfig, description="Settings persistence"
    )

    # Protected tables
    table_prefix: str = Field("wp_", description="Table prefix, prepended to new tables")
    multisite: bool = Field(False, description="Also protect multisite core tables")
    core_tables: Optional[List[str]] = Field(
        None, description="Protected table names (derived from the prefix when unset)"
    )

    preview: PreviewConfig = Field(default_factory=PreviewConfig, description="Data preview")
    operation_mode: Literal["execute", "dry_run"] = Field(
        "execute", description="Execute statements or only log them"
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SCHEMAGUARD_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("table_prefix")
    @classmethod
    def validate_prefix(cls, v):
        if v and not all(c.isalnum() or c == "_" for c in v):
            raise ValueError("Table prefix may only contain letters, numbers and underscores")
        return v

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SchemaGuardConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            # Expand environment variables in the data
            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def get_connection_config(self) -> ConnectionConfig:
        """Resolve the connection from ``database`` or ``database_url``."""
        if self.database is not None:
            return self.database
        if self.database_url:
            try:
                return ConnectionConfig.from_url(self.database_url)
            except DatabaseConfigurationError as e:
                raise ConfigurationError(f"Invalid database URL: {e.message}", cause=e)
        raise ConfigurationError("No database configured; set database or database_url")

    def get_core_tables(self) -> List[str]:
        if self.core_tables is not None:
            return list(self.core_tables)
        return default_core_tables(self.table_prefix, self.multisite)

    def validate_config(self) -> None:
        """Validate the configuration for consistency."""
        self.get_connection_config()
        if self.settings_store.backend == "file" and not self.settings_store.path:
            raise ConfigurationError("settings_store.path is required for the file backend")
        if self.settings_store.backend == "database" and not self.settings_store.table:
            raise ConfigurationError("settings_store.table is required for the database backend")

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_none=True, mode="json"), f, default_flow_style=False, indent=2
            )
