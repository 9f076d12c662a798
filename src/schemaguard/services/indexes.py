"""
Index operations.
"""

from typing import Any, Dict, List, Union

from ..database.introspection import IndexInfo, IndexKind
from ..exceptions import MissingFieldError, NotFoundError, PrimaryIndexError
from ..schema.definitions import IndexDefinition, parse_definition
from ..schema.operations import SchemaChange
from ..schema.validators import sanitize_identifier, validate_choice
from .base import EntityService, service_operation


class IndexService(EntityService):
    """Index operations for one caller."""

    @service_operation
    def list(self, table: str) -> List[IndexInfo]:
        self.gate.authorize_tables(self.caller)
        name = self._existing_table(table)
        return self.introspector.list_indexes(name)

    @service_operation
    def add(self, table: str, index: Union[IndexDefinition, Dict[str, Any]]) -> SchemaChange:
        """
        Add an index. PRIMARY indexes are unnamed; every other kind needs a
        valid name. All indexed columns must exist.
        """
        self.gate.authorize_tables(self.caller)
        name = self._mutable_table(table)
        definition = parse_definition(IndexDefinition, index, "index")

        kind = validate_choice(definition.kind, IndexKind, "index_type")
        index_name = "" if kind == IndexKind.PRIMARY else sanitize_identifier(definition.name, "index")
        if not definition.columns:
            raise MissingFieldError("index_columns", "At least one column is required for the index.")
        columns = [self._existing_column(name, column) for column in definition.columns]

        return self.operations.add_index(
            name, IndexDefinition(name=index_name, kind=kind.value, columns=columns)
        )

    @service_operation
    def delete(self, table: str, index: str) -> SchemaChange:
        self.gate.authorize_tables(self.caller)
        name = self._mutable_table(table)
        if (index or "").strip().upper() == "PRIMARY":
            raise PrimaryIndexError(name)

        index_name = sanitize_identifier(index, "index")
        if self.introspector.get_index(name, index_name) is None:
            raise NotFoundError("index", index_name, name)
        return self.operations.drop_index(name, index_name)
