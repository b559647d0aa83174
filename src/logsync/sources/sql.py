"""
SQL record source implementation.

Reads log rows from the ReportPortal schema (``log`` and ``test_item``
tables) through async SQLAlchemy. Queries are plain SQL with named
parameters and run unchanged on PostgreSQL (asyncpg) and SQLite (aiosqlite).

Schema expectations:
    log(id, log_time, log_message, item_id, launch_id, project_id)
    test_item(item_id, launch_id, retry_of)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, TextClause, bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from logsync.exceptions import SourceUnavailableError
from logsync.models import LogRecord
from logsync.observability import (
    ATTR_BATCH_SIZE,
    ATTR_CURSOR,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_LOWER_BOUND,
    ATTR_RECORD_COUNT,
    Tracer,
    create_tracer,
)
from logsync.sources._connection import execute_with_connection
from logsync.sources.interface import RecordSource
from logsync.types import Cursor, LogId

logger = logging.getLogger(__name__)

SELECT_EARLIEST_ID = "SELECT MIN(id) FROM log"

SELECT_ID_NEAR_TIME = "SELECT id FROM log WHERE log_time >= :log_time ORDER BY id LIMIT 1"

SELECT_WITH_DIRECT_LAUNCH = """
    SELECT id, log_time, log_message, item_id, launch_id, project_id
    FROM log
    WHERE launch_id IS NOT NULL{bounds}
    ORDER BY id DESC
    LIMIT :limit
"""

# Logs without a launch id get it from their item, or, when the item is a
# retry, from the item it retries. Only one level of retry_of is followed.
SELECT_WITHOUT_DIRECT_LAUNCH = """
    SELECT l.id AS id, l.log_time AS log_time, l.log_message AS log_message,
           l.item_id AS item_id, ti.launch_id AS launch_id, l.project_id AS project_id
    FROM log l
    JOIN test_item ti ON l.item_id = ti.item_id
    WHERE l.launch_id IS NULL AND ti.launch_id IS NOT NULL{bounds}
    UNION
    SELECT l.id AS id, l.log_time AS log_time, l.log_message AS log_message,
           l.item_id AS item_id, orig.launch_id AS launch_id, l.project_id AS project_id
    FROM log l
    JOIN test_item ti ON l.item_id = ti.item_id
    JOIN test_item orig ON ti.retry_of = orig.item_id
    WHERE l.launch_id IS NULL AND ti.launch_id IS NULL AND orig.launch_id IS NOT NULL{bounds}
    ORDER BY id DESC
    LIMIT :limit
"""


def _bounds_clause(
    column: str, before_id: Cursor, after_id: Cursor
) -> tuple[str, dict[str, Any]]:
    """Build the id range predicate and its parameters."""
    clause = ""
    params: dict[str, Any] = {}
    if before_id is not None:
        clause += f" AND {column} < :before_id"
        params["before_id"] = before_id
    if after_id is not None:
        clause += f" AND {column} > :after_id"
        params["after_id"] = after_id
    return clause, params


class SQLRecordSource(RecordSource):
    """
    Record source backed by a relational database.

    Accepts an AsyncEngine (one connection per query) or an AsyncConnection
    managed by the caller. Any driver or SQLAlchemy failure is raised as
    SourceUnavailableError.

    Example:
        >>> from sqlalchemy.ext.asyncio import create_async_engine
        >>>
        >>> engine = create_async_engine("postgresql+asyncpg://localhost/reportportal")
        >>> source = SQLRecordSource(engine)
        >>> first_id = await source.earliest_id()
    """

    def __init__(
        self,
        conn: AsyncConnection | AsyncEngine,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the SQL record source.

        Args:
            conn: Database connection or engine
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._conn = conn
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled

    @property
    def db_system(self) -> str:
        """Dialect name of the underlying database."""
        return self._conn.dialect.name

    async def earliest_id(self) -> LogId | None:
        with self._tracer.span(
            "logsync.record_source.earliest_id",
            {ATTR_DB_SYSTEM: self.db_system, ATTR_DB_OPERATION: "SELECT"},
        ):
            result = await self._execute("earliest_id", text(SELECT_EARLIEST_ID), {})
            return result.scalar()

    async def id_near(self, timestamp: datetime) -> LogId | None:
        with self._tracer.span(
            "logsync.record_source.id_near",
            {ATTR_DB_SYSTEM: self.db_system, ATTR_DB_OPERATION: "SELECT"},
        ):
            query = text(SELECT_ID_NEAR_TIME).bindparams(bindparam("log_time", type_=DateTime()))
            result = await self._execute("id_near", query, {"log_time": timestamp})
            return result.scalar()

    async def batch_with_direct_launch(
        self,
        limit: int,
        before_id: Cursor = None,
        after_id: Cursor = None,
    ) -> list[LogRecord]:
        clause, params = _bounds_clause("id", before_id, after_id)
        query = SELECT_WITH_DIRECT_LAUNCH.format(bounds=clause)
        return await self._fetch_batch(
            "batch_with_direct_launch", query, limit, params, before_id, after_id
        )

    async def batch_without_direct_launch(
        self,
        limit: int,
        before_id: Cursor = None,
        after_id: Cursor = None,
    ) -> list[LogRecord]:
        clause, params = _bounds_clause("l.id", before_id, after_id)
        query = SELECT_WITHOUT_DIRECT_LAUNCH.format(bounds=clause)
        return await self._fetch_batch(
            "batch_without_direct_launch", query, limit, params, before_id, after_id
        )

    async def _fetch_batch(
        self,
        operation: str,
        query: str,
        limit: int,
        params: dict[str, Any],
        before_id: Cursor,
        after_id: Cursor,
    ) -> list[LogRecord]:
        attributes: dict[str, Any] = {
            ATTR_DB_SYSTEM: self.db_system,
            ATTR_DB_OPERATION: "SELECT",
            ATTR_BATCH_SIZE: limit,
            ATTR_CURSOR: before_id if before_id is not None else -1,
        }
        if after_id is not None:
            attributes[ATTR_LOWER_BOUND] = after_id

        with self._tracer.span(f"logsync.record_source.{operation}", attributes) as span:
            result = await self._execute(operation, text(query), {**params, "limit": limit})
            records = [LogRecord.from_row(row) for row in result.mappings()]
            if span is not None:
                span.set_attribute(ATTR_RECORD_COUNT, len(records))

        logger.debug(
            "%s returned %d records (before_id=%s, after_id=%s)",
            operation,
            len(records),
            before_id,
            after_id,
        )
        return records

    async def _execute(
        self, operation: str, query: TextClause, params: dict[str, Any]
    ) -> Any:
        try:
            async with execute_with_connection(self._conn) as conn:
                result = await conn.execute(query, params)
                # Buffer rows before the connection is released
                return result.freeze()()
        except (SQLAlchemyError, OSError) as e:
            raise SourceUnavailableError(operation, str(e)) from e

    def __repr__(self) -> str:
        """String representation."""
        tracing = "enabled" if self._enable_tracing else "disabled"
        return f"SQLRecordSource(db_system={self.db_system!r}, tracing={tracing})"
