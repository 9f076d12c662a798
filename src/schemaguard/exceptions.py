"""
Exception classes for schemaguard.

Every failure carries a stable machine-readable ``code`` so the service layer
can turn it into a structured result without inspecting message text.
"""

from typing import Any, Dict, Optional


class SchemaGuardError(Exception):
    """Base exception for all schemaguard errors."""

    code = "schemaguard_error"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause
        if code:
            self.code = code

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(SchemaGuardError):
    """Raised when there's an error in configuration."""

    code = "configuration_error"


class ValidationError(SchemaGuardError):
    """Raised when caller input fails validation."""

    code = "validation_error"


class InvalidNameError(ValidationError):
    """Raised when an identifier is empty or outside the safe character set."""

    code = "invalid_name"

    def __init__(self, identifier: str, kind: str = "identifier") -> None:
        super().__init__(
            f"Invalid {kind} name: {identifier!r}. Use only letters, numbers, and underscores.",
            {"kind": kind},
            code=f"invalid_{kind}_name",
        )
        self.identifier = identifier
        self.kind = kind


class InvalidTypeError(ValidationError):
    """Raised when a column type is not on the allow-list."""

    code = "invalid_column_type"

    def __init__(self, column_type: str) -> None:
        super().__init__(f"Invalid column type: {column_type}")
        self.column_type = column_type


class InvalidEnumError(ValidationError):
    """Raised when a value is not one of an enumerated set."""

    code = "invalid_enum"

    def __init__(self, kind: str, value: Any, allowed: Optional[list] = None) -> None:
        message = f"Invalid {kind.replace('_', ' ')}: {value!r}"
        if allowed:
            message += f". Must be one of: {', '.join(allowed)}"
        super().__init__(message, code=f"invalid_{kind}")
        self.kind = kind
        self.value = value
        self.allowed = allowed or []


class MissingFieldError(ValidationError):
    """Raised when a required field of a definition is empty."""

    code = "missing_field"

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"{field.replace('_', ' ').capitalize()} is required.",
            code=f"invalid_{field}",
        )
        self.field = field


class InvalidEmailError(ValidationError):
    """Raised when a viewer email is malformed."""

    code = "invalid_email"

    def __init__(self, email: str) -> None:
        super().__init__(f"Invalid email address: {email!r}")
        self.email = email


class NotFoundError(SchemaGuardError):
    """Raised when a table, column, index or referenced entity does not exist."""

    code = "not_found"

    def __init__(self, entity: str, name: str, table: Optional[str] = None) -> None:
        label = entity.replace("_", " ")
        if table and entity != "table":
            message = f"{label.capitalize()} '{name}' not found in table '{table}'."
        else:
            message = f"{label.capitalize()} '{name}' not found."
        super().__init__(message, code=f"{entity}_not_found")
        self.entity = entity
        self.name = name
        self.table = table


class AlreadyExistsError(SchemaGuardError):
    """Raised when creating a table that already exists."""

    code = "table_exists"

    def __init__(self, table: str) -> None:
        super().__init__(f"Table '{table}' already exists.")
        self.table = table


class LockedError(SchemaGuardError):
    """Raised when mutating a table that is in the locked set."""

    code = "table_locked"

    def __init__(self, table: str) -> None:
        super().__init__(f"Cannot modify locked table '{table}'.")
        self.table = table


class PrimaryIndexError(SchemaGuardError):
    """Raised when the PRIMARY index is targeted by the generic drop path."""

    code = "cannot_delete_primary"

    def __init__(self, table: str) -> None:
        super().__init__(
            "Cannot delete PRIMARY key. Modify the column instead.",
            {"table": table},
        )
        self.table = table


class AmbiguousPrimaryKeyError(ValidationError):
    """Raised when more than one column of a new table is flagged primary."""

    code = "ambiguous_primary_key"

    def __init__(self, columns: list) -> None:
        super().__init__(
            f"More than one column flagged as primary: {', '.join(columns)}. "
            f"Add a composite PRIMARY index after creating the table instead."
        )
        self.columns = columns


class AccessDeniedError(SchemaGuardError):
    """Raised when the caller lacks the capability or whitelist entry."""

    code = "forbidden"


class InactiveError(AccessDeniedError):
    """Raised when table access is requested while the manager is disabled."""

    code = "db_manager_inactive"

    def __init__(self) -> None:
        super().__init__("DB Manager is not active.")


class DatabaseError(SchemaGuardError):
    """Raised when there's an error with database operations."""

    code = "database_error"


class DatabaseConnectionError(DatabaseError):
    """Raised when there's an error establishing or maintaining database connections."""

    code = "database_connection_error"


class DatabaseConfigurationError(DatabaseError):
    """Raised when there's an error in database configuration."""

    code = "database_configuration_error"


class EngineFailureError(DatabaseError):
    """Raised when the engine rejects a statement; carries its message verbatim."""

    code = "engine_failure"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        errno: Optional[int] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details = {}
        if operation:
            details["operation"] = operation
        if errno:
            details["errno"] = errno
        super().__init__(message, details, cause)
        self.operation = operation
        self.errno = errno


class SettingsStoreError(SchemaGuardError):
    """Raised when the settings record cannot be read or written."""

    code = "settings_store_error"
