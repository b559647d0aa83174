"""
Shared pytest fixtures for the logsync tests.

This module provides:
- Record factory fixtures (record_factory)
- In-memory backends (in_memory_source, in_memory_gateway)
- Tracer fixtures (mock_tracer)
- SQLite fixtures (sqlite_engine, log_database) backed by aiosqlite
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from logsync.index.in_memory import InMemoryIndexGateway
from logsync.models import LogRecord
from logsync.observability import MockTracer
from logsync.sources.in_memory import InMemoryRecordSource

# ============================================================================
# SQLite Availability Check
# ============================================================================

AIOSQLITE_AVAILABLE = False
try:
    import aiosqlite  # noqa: F401

    AIOSQLITE_AVAILABLE = True
except ImportError:
    pass

skip_if_no_aiosqlite = pytest.mark.skipif(not AIOSQLITE_AVAILABLE, reason="aiosqlite not installed")

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)

SCHEMA = [
    """
    CREATE TABLE test_item (
        item_id INTEGER PRIMARY KEY,
        launch_id INTEGER,
        retry_of INTEGER REFERENCES test_item (item_id)
    )
    """,
    """
    CREATE TABLE log (
        id INTEGER PRIMARY KEY,
        log_time TIMESTAMP NOT NULL,
        log_message TEXT,
        item_id INTEGER NOT NULL REFERENCES test_item (item_id),
        launch_id INTEGER,
        project_id INTEGER NOT NULL
    )
    """,
]


# =============================================================================
# Record Fixtures
# =============================================================================


def make_record(
    record_id: int,
    *,
    tenant_id: int = 1,
    launch_id: int | None = 10,
    item_id: int = 100,
    timestamp: datetime | None = None,
    message: str | None = None,
) -> LogRecord:
    """Build a LogRecord whose timestamp grows with its id."""
    return LogRecord(
        id=record_id,
        timestamp=timestamp or BASE_TIME + timedelta(minutes=record_id),
        message=message if message is not None else f"log line {record_id}",
        item_id=item_id,
        launch_id=launch_id,
        tenant_id=tenant_id,
    )


@pytest.fixture
def record_factory() -> Callable[..., LogRecord]:
    """
    Factory fixture for creating log records with sensible defaults.

    Usage:
        def test_something(record_factory):
            record = record_factory(5)
            joined = record_factory(6, launch_id=None, item_id=200)

    Returns:
        The make_record factory function.
    """
    return make_record


@pytest.fixture
def in_memory_source() -> InMemoryRecordSource:
    """Provide an empty in-memory record source with tracing disabled."""
    return InMemoryRecordSource(enable_tracing=False)


@pytest.fixture
def in_memory_gateway() -> InMemoryIndexGateway:
    """Provide an empty in-memory index gateway."""
    return InMemoryIndexGateway()


@pytest.fixture
def mock_tracer() -> MockTracer:
    """Provide a tracer that records span names and attributes."""
    return MockTracer()


# ============================================================================
# SQLite Fixtures
# ============================================================================


class LogDatabase:
    """Seeds the ReportPortal log schema in a test database."""

    def __init__(self, engine: Any) -> None:
        self.engine = engine

    async def add_item(
        self,
        item_id: int,
        launch_id: int | None = None,
        retry_of: int | None = None,
    ) -> None:
        from sqlalchemy import text

        async with self.engine.begin() as conn:
            await conn.execute(
                text(
                    "INSERT INTO test_item (item_id, launch_id, retry_of) "
                    "VALUES (:item_id, :launch_id, :retry_of)"
                ),
                {"item_id": item_id, "launch_id": launch_id, "retry_of": retry_of},
            )

    async def add_logs(self, records: list[LogRecord]) -> None:
        from sqlalchemy import DateTime, bindparam, text

        statement = text(
            "INSERT INTO log (id, log_time, log_message, item_id, launch_id, project_id) "
            "VALUES (:id, :log_time, :log_message, :item_id, :launch_id, :project_id)"
        ).bindparams(bindparam("log_time", type_=DateTime()))

        async with self.engine.begin() as conn:
            for record in records:
                await conn.execute(
                    statement,
                    {
                        "id": record.id,
                        "log_time": record.timestamp,
                        "log_message": record.message,
                        "item_id": record.item_id,
                        "launch_id": record.launch_id,
                        "project_id": record.tenant_id,
                    },
                )


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[Any, None]:
    """
    Provide an AsyncEngine on a fresh SQLite file with the log schema.

    Yields:
        sqlalchemy AsyncEngine using the aiosqlite driver
    """
    if not AIOSQLITE_AVAILABLE:
        pytest.skip("aiosqlite not installed")

    from sqlalchemy import text
    from sqlalchemy.ext.asyncio import create_async_engine

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'logs.db'}")
    async with engine.begin() as conn:
        for statement in SCHEMA:
            await conn.execute(text(statement))

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def log_database(sqlite_engine: Any) -> LogDatabase:
    """Provide a seeding helper bound to sqlite_engine."""
    return LogDatabase(sqlite_engine)
