"""
Access gate for schemaguard.

Three settings axes combine into each decision: the caller's admin
capability (vouched for by the host), the ``enabled`` switch, and the viewer
email whitelist. Locked tables are checked separately and reject every
mutation regardless of the other axes.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import AccessDeniedError, InactiveError, LockedError, ValidationError
from ..schema.validators import sanitize_identifier, strip_identifier
from .settings import Settings, SettingsStore, normalize_email


logger = logging.getLogger(__name__)

CORE_TABLE_NAMES = (
    "posts",
    "postmeta",
    "comments",
    "commentmeta",
    "terms",
    "term_taxonomy",
    "term_relationships",
    "termmeta",
    "options",
    "users",
    "usermeta",
    "links",
)

MULTISITE_TABLE_NAMES = (
    "blogs",
    "blogmeta",
    "site",
    "sitemeta",
    "signups",
    "registration_log",
)


def default_core_tables(prefix: str = "wp_", multisite: bool = False) -> List[str]:
    """Protected table names for a table prefix."""
    names = list(CORE_TABLE_NAMES)
    if multisite:
        names.extend(MULTISITE_TABLE_NAMES)
    return [f"{prefix}{name}" for name in names]


@dataclass(frozen=True)
class Caller:
    """The identity a request runs as, as vouched for by the host."""

    email: Optional[str] = None
    is_admin: bool = False

    @property
    def normalized_email(self) -> str:
        return (self.email or "").strip().lower()


class AccessGate:
    """Authorization and table locking on top of a settings store."""

    def __init__(
        self,
        store: SettingsStore,
        core_tables: Optional[Iterable[str]] = None,
        table_source: Optional[Callable[[], Iterable[str]]] = None,
    ):
        self.store = store
        self.core_tables = frozenset(core_tables if core_tables is not None else default_core_tables())
        # Existing table names, used to lock everything when the first record is written
        self.table_source = table_source

    # Settings access

    def settings(self) -> Settings:
        """Current settings, defaulted when nothing is stored."""
        return self.store.load() or Settings()

    def _current(self) -> Settings:
        """
        Settings to modify. With nothing stored yet, the first record is
        written with every existing table locked before the change applies.
        """
        stored = self.store.load()
        if stored is not None:
            return stored
        if self.table_source is None:
            return Settings()
        return self.initialize(self.table_source())

    def _save(self, settings: Settings) -> Settings:
        self.store.save(settings)
        return settings

    def is_enabled(self) -> bool:
        return self.settings().enabled

    def is_locked(self, table: str) -> bool:
        return strip_identifier(table) in self.settings().locked_tables

    def is_core_table(self, table: str) -> bool:
        return table in self.core_tables

    # Decisions

    def can_manage(self, caller: Caller) -> bool:
        """Admins manage settings regardless of the whitelist."""
        return caller.is_admin

    def can_view_tables(self, caller: Caller) -> bool:
        """Admin and whitelisted; an empty whitelist lets nobody in."""
        if not caller.is_admin:
            return False
        emails = self.settings().viewer_emails
        if not emails:
            return False
        return caller.normalized_email in emails

    def can_see_menu(self, caller: Caller) -> bool:
        """Admin and, when a whitelist exists, whitelisted."""
        if not caller.is_admin:
            return False
        emails = self.settings().viewer_emails
        if not emails:
            return True
        return caller.normalized_email in emails

    def authorize_manage(self, caller: Caller) -> None:
        if not self.can_manage(caller):
            raise AccessDeniedError("You do not have permission to manage DB Manager settings.")

    def authorize_tables(self, caller: Caller) -> None:
        """
        Check the caller may browse or change tables.

        Raises:
            AccessDeniedError: Not an admin, or not on the viewer whitelist.
            InactiveError: The manager is disabled.
        """
        if not self.can_manage(caller):
            raise AccessDeniedError("You do not have permission to view tables.")
        if not self.is_enabled():
            raise InactiveError()
        if not self.can_view_tables(caller):
            logger.info(f"Table access denied for {caller.email or 'anonymous caller'}")
            raise AccessDeniedError("You do not have permission to access DB Manager.")

    def ensure_unlocked(self, table: str) -> None:
        if self.is_locked(table):
            raise LockedError(table)

    # Mutations; adding a present item or removing an absent one succeeds

    def activate(self) -> Settings:
        settings = self._current()
        settings.enabled = True
        logger.info("DB Manager activated")
        return self._save(settings)

    def deactivate(self) -> Settings:
        settings = self._current()
        settings.enabled = False
        logger.info("DB Manager deactivated")
        return self._save(settings)

    def add_viewer_email(self, email: str) -> Settings:
        normalized = normalize_email(email)
        settings = self._current()
        if normalized in settings.viewer_emails:
            return settings
        settings.viewer_emails = settings.viewer_emails + [normalized]
        return self._save(settings)

    def remove_viewer_email(self, email: str) -> Settings:
        normalized = (email or "").strip().lower()
        settings = self._current()
        if normalized not in settings.viewer_emails:
            return settings
        settings.viewer_emails = [e for e in settings.viewer_emails if e != normalized]
        return self._save(settings)

    def lock_table(self, table: str) -> Settings:
        name = sanitize_identifier(table, "table")
        settings = self._current()
        if name in settings.locked_tables:
            return settings
        settings.locked_tables = settings.locked_tables + [name]
        logger.info(f"Locked table {name}")
        return self._save(settings)

    def unlock_table(self, table: str) -> Settings:
        name = strip_identifier(table)
        settings = self._current()
        if name not in settings.locked_tables:
            return settings
        settings.locked_tables = [t for t in settings.locked_tables if t != name]
        logger.info(f"Unlocked table {name}")
        return self._save(settings)

    def update_settings(self, changes: Dict[str, Any]) -> Settings:
        """
        Apply a partial update; keys that are absent or None keep their value.

        Email and table lists are cleaned and deduplicated by the model;
        malformed emails are dropped. A list key given anything but a list
        keeps its value.

        Raises:
            ValidationError: A value the settings model cannot accept.
        """
        current = self._current().model_dump()
        for key in ("enabled", "viewer_emails", "locked_tables"):
            value = changes.get(key)
            if value is None:
                continue
            if key != "enabled" and not isinstance(value, (list, tuple)):
                logger.warning(f"Ignoring {key} update: expected a list, got {type(value).__name__}")
                continue
            current[key] = value

        try:
            settings = Settings.model_validate(current)
        except PydanticValidationError as e:
            fields = sorted({str(error["loc"][0]) for error in e.errors() if error.get("loc")})
            raise ValidationError(
                f"Invalid settings value for: {', '.join(fields)}.",
                details={"fields": fields},
                cause=e,
                code="invalid_settings",
            ) from e
        return self._save(settings)

    def reset(self) -> None:
        """Delete the stored settings record."""
        self.store.delete()
        logger.info("Settings record deleted")

    def initialize(self, existing_tables: Iterable[str]) -> Settings:
        """
        Create the first settings record with every existing table locked.

        A no-op returning the stored record when one already exists.
        """
        current = self.store.load()
        if current is not None:
            return current
        settings = Settings(enabled=False, viewer_emails=[], locked_tables=list(existing_tables))
        logger.info(f"Initialized settings with {len(settings.locked_tables)} locked tables")
        return self._save(settings)
