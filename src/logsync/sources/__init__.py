"""
Record sources for logsync.

This module provides:
- RecordSource: Abstract base class for reading log rows
- SQLRecordSource: Async SQLAlchemy implementation (PostgreSQL, SQLite)
- InMemoryRecordSource: List-backed implementation for testing
- TestItem: Test item row used by the in-memory launch resolution
"""

from logsync.sources.in_memory import InMemoryRecordSource, TestItem
from logsync.sources.interface import RecordSource
from logsync.sources.sql import SQLRecordSource

__all__ = [
    "RecordSource",
    "SQLRecordSource",
    "InMemoryRecordSource",
    "TestItem",
]
