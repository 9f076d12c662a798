"""
Database integration package for schemaguard.

This package provides:
- Parameterized statements with quoted identifier placeholders
- Synchronous MySQL connection pooling
- Schema introspection of tables, columns, indexes and foreign keys
"""

from .connection import ConnectionConfig, ConnectionPool
from .introspection import (
    ColumnInfo,
    DataPreview,
    ForeignKeyInfo,
    IndexInfo,
    IndexKind,
    ReferentialAction,
    SchemaIntrospector,
    TableStats,
)
from .statements import Identifier, Statement

__all__ = [
    "ConnectionConfig",
    "ConnectionPool",
    "SchemaIntrospector",
    "ColumnInfo",
    "IndexInfo",
    "IndexKind",
    "ForeignKeyInfo",
    "ReferentialAction",
    "TableStats",
    "DataPreview",
    "Identifier",
    "Statement",
]
