"""
Shared plumbing for the entity services.
"""

import logging
from functools import wraps

from ..access.gate import AccessGate, Caller
from ..database.introspection import SchemaIntrospector
from ..exceptions import NotFoundError, SchemaGuardError
from ..results import Result
from ..schema.operations import SchemaOperations
from ..schema.validators import sanitize_identifier


logger = logging.getLogger(__name__)


def service_operation(func):
    """Turn a service method's return value or schemaguard error into a Result."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return Result.success(func(self, *args, **kwargs))
        except SchemaGuardError as e:
            logger.warning(f"{type(self).__name__}.{func.__name__} failed [{e.code}]: {e.message}")
            return Result.failure(e)
    return wrapper


class EntityService:
    """Base for services bound to one caller."""

    def __init__(
        self,
        caller: Caller,
        gate: AccessGate,
        introspector: SchemaIntrospector,
        operations: SchemaOperations,
    ):
        self.caller = caller
        self.gate = gate
        self.introspector = introspector
        self.operations = operations

    def _existing_table(self, table: str) -> str:
        """Sanitize a table name and require the table to exist."""
        name = sanitize_identifier(table, "table")
        if not self.introspector.table_exists(name):
            raise NotFoundError("table", name)
        return name

    def _mutable_table(self, table: str) -> str:
        """Like ``_existing_table``, and also require the table to be unlocked."""
        name = self._existing_table(table)
        self.gate.ensure_unlocked(name)
        return name

    def _existing_column(self, table: str, column: str) -> str:
        name = sanitize_identifier(column, "column")
        if not self.introspector.column_exists(table, name):
            raise NotFoundError("column", name, table)
        return name
