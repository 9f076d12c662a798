"""
Table operations: listing, details, create, delete and locking.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Union

from ..database.introspection import ColumnInfo
from ..exceptions import AlreadyExistsError, MissingFieldError
from ..schema.definitions import ColumnDefinition, parse_definition
from ..schema.operations import SchemaChange
from ..schema.validators import sanitize_identifier
from .base import EntityService, service_operation


@dataclass
class TableSummary:
    """A table as listed, with its lock and core flags."""

    name: str
    columns: int
    rows: int
    is_locked: bool = False
    is_core: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": self.columns,
            "rows": self.rows,
            "is_locked": self.is_locked,
            "is_core": self.is_core,
        }


@dataclass
class TableDetail(TableSummary):
    """A table with its full column structure."""

    structure: List[ColumnInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["structure"] = [column.to_dict() for column in self.structure]
        return data


def coerce_columns(columns: Sequence[Union[ColumnDefinition, Dict[str, Any]]]) -> List[ColumnDefinition]:
    """Accept column definitions as models or plain mappings."""
    return [parse_definition(ColumnDefinition, column, "column") for column in columns or []]


class TableService(EntityService):
    """Table operations for one caller."""

    def __init__(self, *args, table_prefix: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.table_prefix = table_prefix

    @service_operation
    def list(self) -> List[TableSummary]:
        self.gate.authorize_tables(self.caller)
        settings = self.gate.settings()
        return [
            TableSummary(
                name=stats.name,
                columns=stats.columns,
                rows=stats.rows,
                is_locked=stats.name in settings.locked_tables,
                is_core=self.gate.is_core_table(stats.name),
            )
            for stats in self.introspector.list_tables()
        ]

    @service_operation
    def get(self, table: str) -> TableDetail:
        self.gate.authorize_tables(self.caller)
        name = self._existing_table(table)
        structure = self.introspector.describe_table(name)
        return TableDetail(
            name=name,
            columns=len(structure),
            rows=self.introspector.row_count(name),
            is_locked=self.gate.is_locked(name),
            is_core=self.gate.is_core_table(name),
            structure=structure,
        )

    @service_operation
    def create(self, table: str, columns: Sequence[Union[ColumnDefinition, Dict[str, Any]]]) -> SchemaChange:
        """
        Create a table; the configured prefix is prepended when missing.

        A new table starts unlocked.
        """
        self.gate.authorize_tables(self.caller)
        name = sanitize_identifier(table, "table")
        if self.table_prefix and not name.startswith(self.table_prefix):
            name = f"{self.table_prefix}{name}"

        if self.introspector.table_exists(name):
            raise AlreadyExistsError(name)

        definitions = coerce_columns(columns)
        if not definitions:
            raise MissingFieldError("columns", "At least one column is required.")

        return self.operations.create_table(name, definitions)

    @service_operation
    def delete(self, table: str) -> SchemaChange:
        self.gate.authorize_tables(self.caller)
        name = self._mutable_table(table)
        return self.operations.drop_table(name)

    @service_operation
    def lock(self, table: str) -> List[str]:
        self.gate.authorize_tables(self.caller)
        name = self._existing_table(table)
        return self.gate.lock_table(name).locked_tables

    @service_operation
    def unlock(self, table: str) -> List[str]:
        self.gate.authorize_tables(self.caller)
        name = self._existing_table(table)
        return self.gate.unlock_table(name).locked_tables
