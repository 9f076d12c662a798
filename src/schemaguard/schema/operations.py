"""
Schema operations (DDL builder) for schemaguard.

Builder functions turn validated definitions into :class:`Statement` values;
:class:`SchemaOperations` executes them through the connection pool and
records each one as a :class:`SchemaChange`.

Statements are executed one at a time. MySQL commits DDL implicitly, so a
caller that chains several changes (create a table, then add a foreign key)
gets no rollback when a later step fails.
"""

import logging
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..database.connection import ConnectionPool
from ..database.introspection import IndexKind, ReferentialAction
from ..database.statements import Identifier, Statement, identifiers, placeholders
from ..exceptions import (
    AmbiguousPrimaryKeyError,
    EngineFailureError,
    MissingFieldError,
    PrimaryIndexError,
)
from .definitions import ColumnDefinition, IndexDefinition, RelationDefinition
from .validators import (
    default_clause,
    escape_default,
    sanitize_identifier,
    validate_choice,
    validate_type,
)


logger = logging.getLogger(__name__)

_CHARSET = re.compile(r"^[A-Za-z0-9_]+$")


class ChangeType(str, Enum):
    """Types of schema changes."""

    CREATE_TABLE = "create_table"
    DROP_TABLE = "drop_table"
    ADD_COLUMN = "add_column"
    MODIFY_COLUMN = "modify_column"
    DROP_COLUMN = "drop_column"
    ADD_INDEX = "add_index"
    DROP_INDEX = "drop_index"
    ADD_FOREIGN_KEY = "add_foreign_key"
    DROP_FOREIGN_KEY = "drop_foreign_key"


class OperationMode(str, Enum):
    """Schema operation modes."""

    EXECUTE = "execute"
    DRY_RUN = "dry_run"  # Build and log statements, don't execute


@dataclass
class SchemaChange:
    """Represents a schema change operation."""

    change_type: ChangeType
    table: str
    description: str
    statement: Statement
    target_object: Optional[str] = None  # Column name, index name, etc.
    new_definition: Optional[str] = None

    # Execution results
    executed: bool = False
    execution_time_ms: Optional[float] = None
    error: Optional[str] = None

    @property
    def sql(self) -> str:
        return self.statement.render()

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def change_id(self) -> str:
        target = self.target_object or self.table
        return f"{self.change_type.value}_{self.table}_{target}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "change_type": self.change_type.value,
            "table": self.table,
            "target": self.target_object,
            "description": self.description,
            "sql": self.sql,
            "executed": self.executed,
            "execution_time_ms": self.execution_time_ms,
            "error": self.error,
        }


def describe_column(column: ColumnDefinition, column_type: str) -> str:
    """Human-readable column definition used in change records and logs."""
    parts = [column.name, column_type, "NULL" if column.nullable else "NOT NULL"]
    if column.auto_increment:
        parts.append("AUTO_INCREMENT")
    elif column.default is not None:
        parts.append(f"DEFAULT {escape_default(column.default)}")
    return " ".join(parts)


def column_clause(column: ColumnDefinition, name: Optional[str] = None) -> Tuple[str, List[Any]]:
    """
    Build one ``name type [NOT] NULL [AUTO_INCREMENT] [DEFAULT ...]`` clause.

    Auto-increment columns never get a DEFAULT.
    """
    column_name = sanitize_identifier(name or column.name, "column")
    column_type = validate_type(column.type, column.length)

    parts = ["%i", column_type, "NULL" if column.nullable else "NOT NULL"]
    params: List[Any] = [Identifier(column_name, "column")]

    if column.auto_increment:
        parts.append("AUTO_INCREMENT")
    elif column.default is not None:
        clause, clause_params = default_clause(column.default)
        parts.append(clause)
        params.extend(clause_params)

    return " ".join(parts), params


def build_create_table(
    table: str, columns: Sequence[ColumnDefinition], table_options: str = ""
) -> Statement:
    """
    Build ``CREATE TABLE`` with one clause per column.

    A single primary-flagged column becomes the PRIMARY KEY. Several flagged
    columns are rejected instead of silently picking one.
    """
    if not columns:
        raise MissingFieldError("columns", "At least one column is required.")

    table_name = sanitize_identifier(table, "table")
    clauses: List[str] = []
    params: List[Any] = [Identifier(table_name, "table")]

    for column in columns:
        clause, clause_params = column_clause(column)
        clauses.append(clause)
        params.extend(clause_params)

    primary = [sanitize_identifier(c.name, "column") for c in columns if c.primary]
    if len(primary) > 1:
        raise AmbiguousPrimaryKeyError(primary)
    if primary:
        clauses.append("PRIMARY KEY (%i)")
        params.append(Identifier(primary[0], "column"))

    template = "CREATE TABLE %i (\n    " + ",\n    ".join(clauses) + "\n)"
    if table_options:
        template += f" {table_options}"
    return Statement(template, params)


def build_drop_table(table: str) -> Statement:
    return Statement("DROP TABLE %i", (Identifier(sanitize_identifier(table, "table"), "table"),))


def build_add_column(table: str, column: ColumnDefinition) -> Statement:
    """Build ``ALTER TABLE ... ADD COLUMN``, optionally ``AFTER`` a column."""
    table_name = sanitize_identifier(table, "table")
    clause, params = column_clause(column)
    template = f"ALTER TABLE %i ADD COLUMN {clause}"
    params = [Identifier(table_name, "table")] + params

    if column.after:
        template += " AFTER %i"
        params.append(Identifier(sanitize_identifier(column.after, "column"), "column"))

    return Statement(template, params)


def build_modify_column(table: str, current: str, column: ColumnDefinition) -> Statement:
    """Build ``ALTER TABLE ... CHANGE COLUMN``; an empty new name keeps the current one."""
    table_name = sanitize_identifier(table, "table")
    current_name = sanitize_identifier(current, "column")
    clause, params = column_clause(column, name=column.name or current_name)
    return Statement(
        f"ALTER TABLE %i CHANGE COLUMN %i {clause}",
        [Identifier(table_name, "table"), Identifier(current_name, "column")] + params,
    )


def build_drop_column(table: str, column: str) -> Statement:
    return Statement(
        "ALTER TABLE %i DROP COLUMN %i",
        (
            Identifier(sanitize_identifier(table, "table"), "table"),
            Identifier(sanitize_identifier(column, "column"), "column"),
        ),
    )


def build_add_index(table: str, index: IndexDefinition) -> Statement:
    """
    Build an ``ADD ... INDEX`` statement for the index kind.

    PRIMARY uses the unnamed ``ADD PRIMARY KEY`` form; every other kind is a
    named index over the same column list.
    """
    table_name = sanitize_identifier(table, "table")
    kind = validate_choice(index.kind, IndexKind, "index_type")
    if not index.columns:
        raise MissingFieldError("index_columns", "At least one column is required for the index.")
    columns = identifiers([sanitize_identifier(c, "column") for c in index.columns])
    column_list = placeholders(len(columns))

    if kind == IndexKind.PRIMARY:
        return Statement(
            f"ALTER TABLE %i ADD PRIMARY KEY ({column_list})",
            [Identifier(table_name, "table")] + columns,
        )

    prefix = "" if kind == IndexKind.INDEX else f"{kind.value} "
    return Statement(
        f"ALTER TABLE %i ADD {prefix}INDEX %i ({column_list})",
        [Identifier(table_name, "table"), Identifier(sanitize_identifier(index.name, "index"), "index")]
        + columns,
    )


def build_drop_index(table: str, index: str) -> Statement:
    """Build ``DROP INDEX``; the PRIMARY index is refused."""
    table_name = sanitize_identifier(table, "table")
    if (index or "").strip().upper() == "PRIMARY":
        raise PrimaryIndexError(table_name)
    return Statement(
        "ALTER TABLE %i DROP INDEX %i",
        (Identifier(table_name, "table"), Identifier(sanitize_identifier(index, "index"), "index")),
    )


def foreign_key_name(table: str, relation: RelationDefinition) -> str:
    """Constraint name for a relation, synthesized as ``fk_<table>_<column>`` when absent."""
    if relation.name:
        return sanitize_identifier(relation.name, "relation")
    return f"fk_{sanitize_identifier(table, 'table')}_{sanitize_identifier(relation.column, 'column')}"


def build_add_foreign_key(table: str, relation: RelationDefinition) -> Statement:
    """Build ``ADD CONSTRAINT ... FOREIGN KEY ... REFERENCES ...``."""
    on_delete = validate_choice(relation.on_delete or "RESTRICT", ReferentialAction, "on_delete")
    on_update = validate_choice(relation.on_update or "RESTRICT", ReferentialAction, "on_update")

    return Statement(
        "ALTER TABLE %i ADD CONSTRAINT %i FOREIGN KEY (%i) REFERENCES %i (%i) "
        f"ON DELETE {on_delete.value} ON UPDATE {on_update.value}",
        (
            Identifier(sanitize_identifier(table, "table"), "table"),
            Identifier(foreign_key_name(table, relation), "relation"),
            Identifier(sanitize_identifier(relation.column, "column"), "column"),
            Identifier(sanitize_identifier(relation.referenced_table, "table"), "table"),
            Identifier(sanitize_identifier(relation.referenced_column, "column"), "column"),
        ),
    )


def build_drop_foreign_key(table: str, name: str) -> Statement:
    return Statement(
        "ALTER TABLE %i DROP FOREIGN KEY %i",
        (
            Identifier(sanitize_identifier(table, "table"), "table"),
            Identifier(sanitize_identifier(name, "relation"), "relation"),
        ),
    )


class SchemaOperations:
    """Executes schema changes built by the functions above."""

    def __init__(
        self,
        pool: ConnectionPool,
        operation_mode: OperationMode = OperationMode.EXECUTE,
        charset: Optional[str] = "utf8mb4",
        collation: Optional[str] = None,
    ):
        self.pool = pool
        self.operation_mode = operation_mode
        self.table_options = self._table_options(charset, collation)

    @staticmethod
    def _table_options(charset: Optional[str], collation: Optional[str]) -> str:
        options = []
        if charset and _CHARSET.match(charset):
            options.append(f"DEFAULT CHARSET={charset}")
        if collation and _CHARSET.match(collation):
            options.append(f"COLLATE={collation}")
        return " ".join(options)

    def create_table(self, table: str, columns: Sequence[ColumnDefinition]) -> SchemaChange:
        statement = build_create_table(table, columns, self.table_options)
        return self._execute_change(
            SchemaChange(
                change_type=ChangeType.CREATE_TABLE,
                table=table,
                description=f"Create table {table} with {len(columns)} columns",
                statement=statement,
            )
        )

    def drop_table(self, table: str) -> SchemaChange:
        return self._execute_change(
            SchemaChange(
                change_type=ChangeType.DROP_TABLE,
                table=table,
                description=f"Drop table {table}",
                statement=build_drop_table(table),
            )
        )

    def add_column(self, table: str, column: ColumnDefinition) -> SchemaChange:
        statement = build_add_column(table, column)
        return self._execute_change(
            SchemaChange(
                change_type=ChangeType.ADD_COLUMN,
                table=table,
                description=f"Add column {column.name}",
                statement=statement,
                target_object=column.name,
                new_definition=describe_column(column, validate_type(column.type, column.length)),
            )
        )

    def modify_column(self, table: str, current: str, column: ColumnDefinition) -> SchemaChange:
        statement = build_modify_column(table, current, column)
        new_name = column.name or current
        description = f"Modify column {current}"
        if new_name != current:
            description += f" (rename to {new_name})"
        return self._execute_change(
            SchemaChange(
                change_type=ChangeType.MODIFY_COLUMN,
                table=table,
                description=description,
                statement=statement,
                target_object=current,
                new_definition=describe_column(
                    column.model_copy(update={"name": new_name}),
                    validate_type(column.type, column.length),
                ),
            )
        )

    def drop_column(self, table: str, column: str) -> SchemaChange:
        return self._execute_change(
            SchemaChange(
                change_type=ChangeType.DROP_COLUMN,
                table=table,
                description=f"Drop column {column}",
                statement=build_drop_column(table, column),
                target_object=column,
            )
        )

    def add_index(self, table: str, index: IndexDefinition) -> SchemaChange:
        statement = build_add_index(table, index)
        return self._execute_change(
            SchemaChange(
                change_type=ChangeType.ADD_INDEX,
                table=table,
                description=f"Add {index.kind.upper()} index {index.name or 'PRIMARY'}",
                statement=statement,
                target_object=index.name or "PRIMARY",
                new_definition=f"{index.kind.upper()} ({', '.join(index.columns)})",
            )
        )

    def drop_index(self, table: str, index: str) -> SchemaChange:
        return self._execute_change(
            SchemaChange(
                change_type=ChangeType.DROP_INDEX,
                table=table,
                description=f"Drop index {index}",
                statement=build_drop_index(table, index),
                target_object=index,
            )
        )

    def add_foreign_key(self, table: str, relation: RelationDefinition) -> SchemaChange:
        statement = build_add_foreign_key(table, relation)
        name = foreign_key_name(table, relation)
        return self._execute_change(
            SchemaChange(
                change_type=ChangeType.ADD_FOREIGN_KEY,
                table=table,
                description=f"Add foreign key {name}",
                statement=statement,
                target_object=name,
                new_definition=(
                    f"{relation.column} -> {relation.referenced_table}.{relation.referenced_column}"
                ),
            )
        )

    def drop_foreign_key(self, table: str, name: str) -> SchemaChange:
        return self._execute_change(
            SchemaChange(
                change_type=ChangeType.DROP_FOREIGN_KEY,
                table=table,
                description=f"Drop foreign key {name}",
                statement=build_drop_foreign_key(table, name),
                target_object=name,
            )
        )

    def _execute_change(self, change: SchemaChange) -> SchemaChange:
        """Execute a schema change, or only log it in dry-run mode."""
        if self.operation_mode == OperationMode.DRY_RUN:
            change.executed = False
            change.description = f"DRY RUN: {change.description}"
            logger.info(f"DRY RUN: Would execute {change.change_id}")
            logger.info(f"SQL: {change.sql}")
            return change

        start_time = time.time()
        try:
            self.pool.execute(change.statement)
        except EngineFailureError as e:
            change.error = e.message
            e.operation = change.change_type.value
            e.details["operation"] = change.change_type.value
            logger.error(f"Failed to execute {change.change_id}: {e.message}")
            raise

        change.executed = True
        change.execution_time_ms = (time.time() - start_time) * 1000
        logger.info(f"Successfully executed {change.change_id} ({change.execution_time_ms:.1f}ms)")
        return change
