"""
Access control package for schemaguard.
"""

from .gate import AccessGate, Caller, default_core_tables
from .settings import (
    DatabaseSettingsStore,
    FileSettingsStore,
    MemorySettingsStore,
    Settings,
    SettingsStore,
)

__all__ = [
    "AccessGate",
    "Caller",
    "default_core_tables",
    "Settings",
    "SettingsStore",
    "FileSettingsStore",
    "DatabaseSettingsStore",
    "MemorySettingsStore",
]
