"""
Settings record and its persistence for schemaguard.

The record is a single shared document: whether the manager is enabled, which
emails may browse tables and which tables are locked against changes. Stores
read and write it whole; there is no concurrency control, so two concurrent
read-modify-write cycles keep only the last write.
"""

import json
import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..database.connection import ConnectionPool
from ..database.statements import Identifier, Statement
from ..exceptions import EngineFailureError, InvalidEmailError, SettingsStoreError
from ..schema.validators import sanitize_identifier, strip_identifier


logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+'-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)+$")


def normalize_email(email: str) -> str:
    """Trim and lowercase an email address, rejecting malformed ones."""
    normalized = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise InvalidEmailError(email)
    return normalized


def _unique(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


class Settings(BaseModel):
    """The persisted access settings."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    enabled: bool = Field(False, description="Table browsing and changes allowed")
    viewer_emails: List[str] = Field(default_factory=list, description="Emails allowed to browse tables")
    locked_tables: List[str] = Field(default_factory=list, description="Tables protected from changes")

    @field_validator("viewer_emails", mode="before")
    @classmethod
    def clean_emails(cls, v):
        if v is None:
            return []
        if not isinstance(v, (list, tuple)):
            raise ValueError("viewer_emails must be a list")
        # Malformed entries in a stored record are dropped, not fatal
        cleaned = []
        for email in v:
            try:
                cleaned.append(normalize_email(str(email)))
            except InvalidEmailError:
                logger.warning(f"Ignoring invalid viewer email in settings: {email!r}")
        return _unique(cleaned)

    @field_validator("locked_tables", mode="before")
    @classmethod
    def clean_tables(cls, v):
        if v is None:
            return []
        if not isinstance(v, (list, tuple)):
            raise ValueError("locked_tables must be a list")
        return _unique([strip_identifier(table) for table in v])


class SettingsStore(ABC):
    """Persistence for the settings record."""

    @abstractmethod
    def load(self) -> Optional[Settings]:
        """Return the stored settings, or None when nothing is stored yet."""

    @abstractmethod
    def save(self, settings: Settings) -> None:
        """Replace the stored settings."""

    @abstractmethod
    def delete(self) -> None:
        """Remove the stored settings record."""

    def _parse(self, data, source: str) -> Settings:
        if not isinstance(data, dict):
            raise SettingsStoreError(f"Settings record in {source} is not a mapping")
        try:
            return Settings.model_validate(data)
        except PydanticValidationError as e:
            raise SettingsStoreError(f"Invalid settings record in {source}", cause=e) from e


class MemorySettingsStore(SettingsStore):
    """Settings kept in process memory."""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings.model_copy(deep=True) if settings else None

    def load(self) -> Optional[Settings]:
        return self._settings.model_copy(deep=True) if self._settings else None

    def save(self, settings: Settings) -> None:
        self._settings = settings.model_copy(deep=True)

    def delete(self) -> None:
        self._settings = None


class FileSettingsStore(SettingsStore):
    """Settings stored as a YAML document on disk."""

    def __init__(self, path: str):
        self.path = Path(os.path.expanduser(path))

    def load(self) -> Optional[Settings]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise SettingsStoreError(f"Failed to read settings from {self.path}", cause=e) from e
        if data is None:
            return None
        return self._parse(data, str(self.path))

    def save(self, settings: Settings) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                yaml.safe_dump(settings.model_dump(), f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise SettingsStoreError(f"Failed to write settings to {self.path}", cause=e) from e
        logger.debug(f"Saved settings to {self.path}")

    def delete(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise SettingsStoreError(f"Failed to delete settings file {self.path}", cause=e) from e


class DatabaseSettingsStore(SettingsStore):
    """
    Settings stored as a JSON value in a key/value options table.

    The table (``option_name``/``option_value``) is created on first save.
    """

    def __init__(self, pool: ConnectionPool, table: str = "schemaguard_options", key: str = "schemaguard_settings"):
        self.pool = pool
        self.table = Identifier(sanitize_identifier(table, "table"), "table")
        self.key = key

    def _ensure_table(self) -> None:
        self.pool.execute(
            Statement(
                """
                CREATE TABLE IF NOT EXISTS %i (
                    option_name VARCHAR(191) NOT NULL,
                    option_value LONGTEXT NOT NULL,
                    PRIMARY KEY (option_name)
                ) DEFAULT CHARSET=utf8mb4
                """,
                (self.table,),
            )
        )

    def _table_exists(self) -> bool:
        count = self.pool.fetchval(
            Statement(
                """
                SELECT COUNT(*) FROM information_schema.TABLES
                WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s
                """,
                (self.table.name,),
            )
        )
        return bool(count)

    def load(self) -> Optional[Settings]:
        try:
            if not self._table_exists():
                return None
            raw = self.pool.fetchval(
                Statement("SELECT option_value FROM %i WHERE option_name = %s", (self.table, self.key))
            )
        except EngineFailureError as e:
            raise SettingsStoreError("Failed to read settings record", cause=e) from e

        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise SettingsStoreError(f"Settings record {self.key!r} is not valid JSON", cause=e) from e
        return self._parse(data, f"option {self.key!r}")

    def save(self, settings: Settings) -> None:
        try:
            self._ensure_table()
            self.pool.execute(
                Statement(
                    """
                    INSERT INTO %i (option_name, option_value) VALUES (%s, %s)
                    ON DUPLICATE KEY UPDATE option_value = VALUES(option_value)
                    """,
                    (self.table, self.key, settings.model_dump_json()),
                )
            )
        except EngineFailureError as e:
            raise SettingsStoreError("Failed to write settings record", cause=e) from e
        logger.debug(f"Saved settings to option {self.key!r}")

    def delete(self) -> None:
        try:
            if self._table_exists():
                self.pool.execute(
                    Statement("DELETE FROM %i WHERE option_name = %s", (self.table, self.key))
                )
        except EngineFailureError as e:
            raise SettingsStoreError("Failed to delete settings record", cause=e) from e
