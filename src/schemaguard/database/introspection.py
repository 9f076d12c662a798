"""
Database schema introspection for schemaguard.

Read-only catalog queries against the connected MySQL database: tables,
columns, indexes, foreign keys, row counts and paginated data previews.
Every public call re-checks that the table still exists, since no
transaction spans the check and the read.
"""

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .connection import ConnectionPool
from .statements import Identifier, Statement


logger = logging.getLogger(__name__)


class IndexKind(str, Enum):
    """Index kinds the engine reports and the DDL builder can create."""

    PRIMARY = "PRIMARY"
    UNIQUE = "UNIQUE"
    FULLTEXT = "FULLTEXT"
    SPATIAL = "SPATIAL"
    INDEX = "INDEX"


class ReferentialAction(str, Enum):
    """ON DELETE / ON UPDATE actions for foreign keys."""

    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"
    SET_DEFAULT = "SET DEFAULT"


@dataclass
class TableStats:
    """Name and size of a table as listed from the catalog."""

    name: str
    columns: int
    rows: int


@dataclass
class ColumnInfo:
    """Information about a database column."""

    name: str
    type: str
    nullable: bool
    default: Optional[str] = None
    extra: str = ""
    key: str = ""

    @property
    def base_type(self) -> str:
        """Declared type without its length, uppercased (``int(11)`` -> ``INT``)."""
        return self.type.split("(", 1)[0].split(" ", 1)[0].upper()

    @property
    def is_primary(self) -> bool:
        return self.key == "PRI"

    @property
    def is_auto_increment(self) -> bool:
        return "auto_increment" in (self.extra or "").lower()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        result = f"{self.name} {self.type}"
        if not self.nullable:
            result += " NOT NULL"
        if self.default is not None:
            result += f" DEFAULT {self.default}"
        if self.extra:
            result += f" {self.extra}"
        return result


@dataclass
class IndexInfo:
    """Information about a database index, columns in catalog order."""

    name: str
    kind: IndexKind
    columns: List[str] = field(default_factory=list)

    @property
    def is_primary(self) -> bool:
        return self.kind == IndexKind.PRIMARY

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.kind.value, "columns": list(self.columns)}


@dataclass
class ForeignKeyInfo:
    """Information about a foreign key constraint."""

    name: str
    column: str
    referenced_table: str
    referenced_column: str
    on_delete: ReferentialAction = ReferentialAction.RESTRICT
    on_update: ReferentialAction = ReferentialAction.RESTRICT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "column": self.column,
            "referenced_table": self.referenced_table,
            "referenced_column": self.referenced_column,
            "on_delete": self.on_delete.value,
            "on_update": self.on_update.value,
        }


@dataclass
class DataPreview:
    """A page of table rows."""

    columns: List[str]
    rows: List[Dict[str, Any]]
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def classify_index(row: Dict[str, Any]) -> IndexKind:
    """Derive the index kind from one ``SHOW INDEX`` row."""
    if row["Key_name"] == "PRIMARY":
        return IndexKind.PRIMARY
    if str(row.get("Non_unique")) == "0":
        return IndexKind.UNIQUE
    index_type = str(row.get("Index_type") or "").upper()
    if index_type == "FULLTEXT":
        return IndexKind.FULLTEXT
    if index_type == "SPATIAL":
        return IndexKind.SPATIAL
    return IndexKind.INDEX


def _action(rule: Optional[str]) -> ReferentialAction:
    try:
        return ReferentialAction(str(rule).upper())
    except ValueError:
        return ReferentialAction.RESTRICT


class SchemaIntrospector:
    """Database schema introspection utilities."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    def table_names(self) -> List[str]:
        """Names of all tables in the current database."""
        rows = self.pool.fetch(Statement("SHOW TABLES"))
        return [next(iter(row.values())) for row in rows]

    def table_exists(self, table: str) -> bool:
        """Check if a table exists."""
        return table in self.table_names()

    def column_exists(self, table: str, column: str) -> bool:
        """Check if a column exists in a table."""
        return any(col.name == column for col in self.describe_table(table))

    def list_tables(self) -> List[TableStats]:
        """
        List all tables with their column and row counts.

        Names come straight from the catalog, so a table named outside the
        identifier pattern (``wp_my-plugin``) is still listed.
        """
        result = []
        for name in self.table_names():
            table = Identifier.catalog(name)
            columns = self.pool.fetch(Statement("SHOW COLUMNS FROM %i", (table,)))
            count = self.pool.fetchval(Statement("SELECT COUNT(*) FROM %i", (table,)))
            result.append(TableStats(name=name, columns=len(columns), rows=int(count or 0)))
        return result

    def row_count(self, table: str) -> int:
        """Count the rows of a table; 0 when the table is gone."""
        if not self.table_exists(table):
            return 0
        count = self.pool.fetchval(Statement("SELECT COUNT(*) FROM %i", (Identifier(table, "table"),)))
        return int(count or 0)

    def describe_table(self, table: str) -> List[ColumnInfo]:
        """Get all columns of a table in ordinal order."""
        if not self.table_exists(table):
            return []

        rows = self.pool.fetch(Statement("SHOW COLUMNS FROM %i", (Identifier(table, "table"),)))
        return [
            ColumnInfo(
                name=row["Field"],
                type=row["Type"],
                nullable=row["Null"] == "YES",
                default=row["Default"],
                extra=row.get("Extra") or "",
                key=row.get("Key") or "",
            )
            for row in rows
        ]

    def list_indexes(self, table: str) -> List[IndexInfo]:
        """
        Get the indexes of a table.

        ``SHOW INDEX`` yields one row per indexed column; rows are grouped by
        index name in the order they arrive, which keeps each index's columns
        in their ``Seq_in_index`` order.
        """
        if not self.table_exists(table):
            return []

        rows = self.pool.fetch(Statement("SHOW INDEX FROM %i", (Identifier(table, "table"),)))
        indexes: Dict[str, IndexInfo] = {}

        for row in rows:
            name = row["Key_name"]
            if name not in indexes:
                indexes[name] = IndexInfo(name=name, kind=classify_index(row))
            indexes[name].columns.append(row["Column_name"])

        return list(indexes.values())

    def get_index(self, table: str, name: str) -> Optional[IndexInfo]:
        """Find one index of a table by name."""
        for index in self.list_indexes(table):
            if index.name == name:
                return index
        return None

    def list_foreign_keys(self, table: str) -> List[ForeignKeyInfo]:
        """Get the foreign keys of a table with their referential actions."""
        if not self.table_exists(table):
            return []

        keys = self.pool.fetch(
            Statement(
                """
                SELECT CONSTRAINT_NAME, COLUMN_NAME, REFERENCED_TABLE_NAME, REFERENCED_COLUMN_NAME
                FROM information_schema.KEY_COLUMN_USAGE
                WHERE TABLE_SCHEMA = DATABASE()
                    AND TABLE_NAME = %s
                    AND REFERENCED_TABLE_NAME IS NOT NULL
                ORDER BY CONSTRAINT_NAME, ORDINAL_POSITION
                """,
                (table,),
            )
        )
        if not keys:
            return []

        rules = self.pool.fetch(
            Statement(
                """
                SELECT CONSTRAINT_NAME, DELETE_RULE, UPDATE_RULE
                FROM information_schema.REFERENTIAL_CONSTRAINTS
                WHERE CONSTRAINT_SCHEMA = DATABASE()
                    AND TABLE_NAME = %s
                """,
                (table,),
            )
        )
        rules_by_name = {rule["CONSTRAINT_NAME"]: rule for rule in rules}

        result = []
        for key in keys:
            rule = rules_by_name.get(key["CONSTRAINT_NAME"], {})
            result.append(
                ForeignKeyInfo(
                    name=key["CONSTRAINT_NAME"],
                    column=key["COLUMN_NAME"],
                    referenced_table=key["REFERENCED_TABLE_NAME"],
                    referenced_column=key["REFERENCED_COLUMN_NAME"],
                    on_delete=_action(rule.get("DELETE_RULE", "RESTRICT")),
                    on_update=_action(rule.get("UPDATE_RULE", "RESTRICT")),
                )
            )
        return result

    def data_preview(self, table: str, limit: int = 100, offset: int = 0) -> Optional[DataPreview]:
        """Fetch a page of rows; ``None`` when the table does not exist."""
        if not self.table_exists(table):
            return None

        columns = [col.name for col in self.describe_table(table)]
        total = self.row_count(table)
        logger.debug(f"Previewing {table}: limit={limit} offset={offset} total={total}")
        rows = self.pool.fetch(
            Statement(
                "SELECT * FROM %i LIMIT %s OFFSET %s",
                (Identifier(table, "table"), int(limit), int(offset)),
            )
        )
        return DataPreview(columns=columns, rows=rows, total=total)
