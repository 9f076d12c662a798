"""
Relation (foreign key) operations.
"""

from typing import Any, Dict, List, Union

from ..database.introspection import ForeignKeyInfo, ReferentialAction
from ..exceptions import MissingFieldError, NotFoundError
from ..schema.definitions import RelationDefinition, parse_definition
from ..schema.operations import SchemaChange
from ..schema.validators import sanitize_identifier, validate_choice
from .base import EntityService, service_operation


class RelationService(EntityService):
    """Foreign key operations for one caller."""

    @service_operation
    def list(self, table: str) -> List[ForeignKeyInfo]:
        self.gate.authorize_tables(self.caller)
        name = self._existing_table(table)
        return self.introspector.list_foreign_keys(name)

    @service_operation
    def add(self, table: str, relation: Union[RelationDefinition, Dict[str, Any]]) -> SchemaChange:
        """
        Add a foreign key after checking both ends of it exist.

        Missing actions default to RESTRICT.
        """
        self.gate.authorize_tables(self.caller)
        name = self._mutable_table(table)
        definition = parse_definition(RelationDefinition, relation, "relation")

        if not definition.column:
            raise MissingFieldError("column", "Column is required.")
        column = self._existing_column(name, definition.column)

        if not definition.referenced_table:
            raise MissingFieldError("referenced_table", "Referenced table is required.")
        referenced_table = sanitize_identifier(definition.referenced_table, "referenced_table")
        if not self.introspector.table_exists(referenced_table):
            raise NotFoundError("referenced_table", referenced_table)

        if not definition.referenced_column:
            raise MissingFieldError("referenced_column", "Referenced column is required.")
        referenced_column = sanitize_identifier(definition.referenced_column, "referenced_column")
        if not self.introspector.column_exists(referenced_table, referenced_column):
            raise NotFoundError("referenced_column", referenced_column, referenced_table)

        on_delete = validate_choice(definition.on_delete or "RESTRICT", ReferentialAction, "on_delete")
        on_update = validate_choice(definition.on_update or "RESTRICT", ReferentialAction, "on_update")

        return self.operations.add_foreign_key(
            name,
            RelationDefinition(
                name=sanitize_identifier(definition.name, "relation") if definition.name else None,
                column=column,
                referenced_table=referenced_table,
                referenced_column=referenced_column,
                on_delete=on_delete.value,
                on_update=on_update.value,
            ),
        )

    @service_operation
    def delete(self, table: str, relation: str) -> SchemaChange:
        self.gate.authorize_tables(self.caller)
        name = self._mutable_table(table)
        relation_name = sanitize_identifier(relation, "relation")
        if not any(key.name == relation_name for key in self.introspector.list_foreign_keys(name)):
            raise NotFoundError("relation", relation_name, name)
        return self.operations.drop_foreign_key(name, relation_name)
