"""
The schemaguard service object.

One ``SchemaManager`` is built at startup from configuration and shared by
every request; ``bind`` produces the caller-scoped services for one request.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .access.gate import AccessGate, Caller
from .access.settings import DatabaseSettingsStore, FileSettingsStore, Settings, SettingsStore
from .config import SchemaGuardConfig
from .database.connection import ConnectionPool
from .database.introspection import SchemaIntrospector
from .schema.operations import OperationMode, SchemaOperations
from .services import (
    ColumnService,
    DataService,
    IndexService,
    RelationService,
    SettingsService,
    TableService,
)


logger = logging.getLogger(__name__)


@dataclass
class BoundServices:
    """Entity services bound to one caller."""

    caller: Caller
    tables: TableService
    columns: ColumnService
    indexes: IndexService
    relations: RelationService
    data: DataService
    settings: SettingsService


class SchemaManager:
    """Owns the pool, settings store, gate, introspector and DDL executor."""

    def __init__(
        self,
        pool: ConnectionPool,
        store: SettingsStore,
        core_tables: Optional[List[str]] = None,
        operation_mode: OperationMode = OperationMode.EXECUTE,
        table_prefix: str = "",
        default_limit: int = 100,
        max_limit: int = 1000,
        charset: str = "utf8mb4",
    ):
        self.pool = pool
        self.introspector = SchemaIntrospector(pool)
        self.gate = AccessGate(store, core_tables, table_source=self.introspector.table_names)
        self.operations = SchemaOperations(pool, operation_mode, charset=charset)
        self.table_prefix = table_prefix
        self.default_limit = default_limit
        self.max_limit = max_limit

    @classmethod
    def from_config(cls, config: SchemaGuardConfig) -> "SchemaManager":
        """Build the manager and its collaborators from configuration."""
        config.validate_config()
        connection = config.get_connection_config()
        pool = ConnectionPool(connection)

        if config.settings_store.backend == "database":
            store = DatabaseSettingsStore(pool, config.settings_store.table, config.settings_store.key)
        else:
            store = FileSettingsStore(config.settings_store.path)

        logger.info(
            f"SchemaManager using {config.settings_store.backend} settings store, "
            f"mode {config.operation_mode}"
        )
        return cls(
            pool,
            store,
            core_tables=config.get_core_tables(),
            operation_mode=OperationMode(config.operation_mode),
            table_prefix=config.table_prefix,
            default_limit=config.preview.default_limit,
            max_limit=config.preview.max_limit,
            charset=connection.charset,
        )

    def bind(self, caller: Caller) -> BoundServices:
        """Services acting on behalf of ``caller``."""
        args = (caller, self.gate, self.introspector, self.operations)
        return BoundServices(
            caller=caller,
            tables=TableService(*args, table_prefix=self.table_prefix),
            columns=ColumnService(*args),
            indexes=IndexService(*args),
            relations=RelationService(*args),
            data=DataService(*args, default_limit=self.default_limit, max_limit=self.max_limit),
            settings=SettingsService(caller, self.gate),
        )

    def initialize(self) -> Settings:
        """Create the first settings record, locking every table that exists now."""
        return self.gate.initialize(self.introspector.table_names())

    def close(self) -> None:
        self.pool.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
