"""
Pytest configuration and shared fixtures for schemaguard tests.

This module provides shared fixtures and utilities for testing all schemaguard components.
"""

from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

from schemaguard.access.gate import AccessGate, Caller, default_core_tables
from schemaguard.access.settings import MemorySettingsStore, Settings
from schemaguard.database.connection import ConnectionConfig, ConnectionPool
from schemaguard.database.introspection import SchemaIntrospector
from schemaguard.schema.operations import SchemaChange, SchemaOperations


ADMIN_EMAIL = "admin@example.com"


# ============================================================================
# Identity Fixtures
# ============================================================================

@pytest.fixture
def admin() -> Caller:
    """Whitelisted administrator."""
    return Caller(email=ADMIN_EMAIL, is_admin=True)


@pytest.fixture
def outsider_admin() -> Caller:
    """Administrator who is not on the whitelist."""
    return Caller(email="other@example.com", is_admin=True)


@pytest.fixture
def non_admin() -> Caller:
    """Whitelisted email without admin capability."""
    return Caller(email=ADMIN_EMAIL, is_admin=False)


# ============================================================================
# Settings Fixtures
# ============================================================================

@pytest.fixture
def settings_store() -> MemorySettingsStore:
    """Enabled manager with the admin whitelisted and wp_options locked."""
    return MemorySettingsStore(
        Settings(enabled=True, viewer_emails=[ADMIN_EMAIL], locked_tables=["wp_options"])
    )


@pytest.fixture
def empty_store() -> MemorySettingsStore:
    """Nothing stored yet."""
    return MemorySettingsStore()


@pytest.fixture
def gate(settings_store) -> AccessGate:
    return AccessGate(settings_store, default_core_tables("wp_"))


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def connection_config() -> ConnectionConfig:
    return ConnectionConfig(host="localhost", database="app", user="admin", password="secret")


@pytest.fixture
def mock_pool() -> MagicMock:
    """Mock connection pool."""
    return MagicMock(spec=ConnectionPool)


def _catalog_pool(tables: List[str], responses: Dict[str, List[Dict[str, Any]]]) -> MagicMock:
    """
    Mock pool answering catalog queries.

    ``SHOW TABLES`` lists ``tables``; any other query returns the rows of the
    first ``responses`` key found in the compiled query text.
    """
    pool = MagicMock(spec=ConnectionPool)

    def fetch(statement):
        query, _ = statement.compile()
        if query.strip() == "SHOW TABLES":
            return [{"Tables_in_app": name} for name in tables]
        for marker, rows in responses.items():
            if marker in query:
                return rows
        return []

    pool.fetch.side_effect = fetch
    return pool


@pytest.fixture
def mock_introspector() -> MagicMock:
    """Introspector where ``demo`` and ``users`` exist with every column present."""
    introspector = MagicMock(spec=SchemaIntrospector)
    introspector.table_exists.side_effect = lambda name: name in ("demo", "users", "wp_options")
    introspector.column_exists.return_value = True
    introspector.table_names.return_value = ["demo", "users", "wp_options"]
    return introspector


@pytest.fixture
def mock_operations() -> MagicMock:
    """DDL executor returning a placeholder change record."""
    operations = MagicMock(spec=SchemaOperations)
    for method in (
        "create_table",
        "drop_table",
        "add_column",
        "modify_column",
        "drop_column",
        "add_index",
        "drop_index",
        "add_foreign_key",
        "drop_foreign_key",
    ):
        getattr(operations, method).return_value = MagicMock(spec=SchemaChange)
    return operations


@pytest.fixture
def catalog_pool():
    """Factory for mock pools answering catalog queries."""
    return _catalog_pool
