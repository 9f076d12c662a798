"""
Column operations.
"""

from typing import Any, Dict, List, Union

from ..database.introspection import ColumnInfo
from ..exceptions import MissingFieldError
from ..schema.definitions import ColumnDefinition, parse_definition
from ..schema.operations import SchemaChange
from ..schema.validators import sanitize_identifier, validate_type
from .base import EntityService, service_operation


ColumnInput = Union[ColumnDefinition, Dict[str, Any]]


def _definition(column: ColumnInput) -> ColumnDefinition:
    return parse_definition(ColumnDefinition, column, "column")


class ColumnService(EntityService):
    """Column operations for one caller."""

    @service_operation
    def list(self, table: str) -> List[ColumnInfo]:
        self.gate.authorize_tables(self.caller)
        name = self._existing_table(table)
        return self.introspector.describe_table(name)

    @service_operation
    def add(self, table: str, column: ColumnInput) -> SchemaChange:
        self.gate.authorize_tables(self.caller)
        name = self._mutable_table(table)
        definition = _definition(column)

        column_name = sanitize_identifier(definition.name, "column")
        if not definition.type:
            raise MissingFieldError("column_type", "Column type is required.")
        validate_type(definition.type, definition.length)
        if definition.after:
            self._existing_column(name, definition.after)

        return self.operations.add_column(name, definition.model_copy(update={"name": column_name}))

    @service_operation
    def update(self, table: str, current: str, column: ColumnInput) -> SchemaChange:
        """Redefine a column; a non-empty ``name`` in the definition renames it."""
        self.gate.authorize_tables(self.caller)
        name = self._mutable_table(table)
        current_name = self._existing_column(name, current)
        definition = _definition(column)

        new_name = sanitize_identifier(definition.name, "column") if definition.name else current_name
        if not definition.type:
            raise MissingFieldError("column_type", "Column type is required.")
        validate_type(definition.type, definition.length)

        return self.operations.modify_column(
            name, current_name, definition.model_copy(update={"name": new_name})
        )

    @service_operation
    def delete(self, table: str, column: str) -> SchemaChange:
        self.gate.authorize_tables(self.caller)
        name = self._mutable_table(table)
        column_name = self._existing_column(name, column)
        return self.operations.drop_column(name, column_name)
