"""
Entity services: caller-bound operations returning typed results.
"""

from .base import EntityService, service_operation
from .columns import ColumnService
from .data import DataService
from .indexes import IndexService
from .relations import RelationService
from .settings import SettingsService
from .tables import TableDetail, TableService, TableSummary

__all__ = [
    "EntityService",
    "service_operation",
    "TableService",
    "TableSummary",
    "TableDetail",
    "ColumnService",
    "IndexService",
    "RelationService",
    "DataService",
    "SettingsService",
]
