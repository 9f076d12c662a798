"""
Schema management package for schemaguard.

This package provides:
- Identifier sanitization and column type validation
- Input definitions for columns, indexes and relations
- DDL statement builders and their execution
"""

from .definitions import ColumnDefinition, IndexDefinition, RelationDefinition
from .operations import ChangeType, OperationMode, SchemaChange, SchemaOperations
from .validators import escape_default, sanitize_identifier, validate_type

__all__ = [
    "ColumnDefinition",
    "IndexDefinition",
    "RelationDefinition",
    "SchemaOperations",
    "SchemaChange",
    "ChangeType",
    "OperationMode",
    "sanitize_identifier",
    "validate_type",
    "escape_default",
]
