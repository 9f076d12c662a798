"""
schemaguard: Guarded MySQL schema management.

schemaguard lists and changes tables, columns, indexes and foreign keys of a
live MySQL database behind an admin whitelist and per-table locks, building
every statement from validated identifiers and an allow-list of column types.
"""

__version__ = "0.1.0"
__author__ = "schemaguard Contributors"

from .access.gate import AccessGate, Caller
from .config import SchemaGuardConfig
from .exceptions import ConfigurationError, DatabaseError, SchemaGuardError, ValidationError
from .manager import SchemaManager
from .results import Result

__all__ = [
    "__version__",
    "SchemaGuardConfig",
    "SchemaManager",
    "AccessGate",
    "Caller",
    "Result",
    "SchemaGuardError",
    "ConfigurationError",
    "DatabaseError",
    "ValidationError",
]
