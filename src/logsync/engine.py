"""
LogSyncEngine - Converges the search index with the relational log store.

A run is a single reconciliation pass:

1. Resume decision: find the database's earliest log id and the point the
   index already covers (configured start time, or the earliest indexed
   record, or nothing at all).
2. Paging: migrate records below the resume point in descending-id pages
   until the shared cursor reaches the sentinel.

No progress is persisted between runs. A failed run is re-run from the
start; because paging resumes below the oldest indexed record, a repeated
run only re-reads what is still missing.

Usage:
    >>> from logsync import LogSyncEngine, SyncConfig
    >>>
    >>> engine = LogSyncEngine(source, gateway, SyncConfig(max_batch_size=500))
    >>> result = await engine.run()
    >>> print(result.outcome, result.records_migrated)
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from logsync.config import SyncConfig
from logsync.exceptions import LogSyncError
from logsync.index.interface import IndexGateway
from logsync.models import SyncOutcome, SyncResult, SyncState
from logsync.observability import (
    ATTR_BATCH_SIZE,
    ATTR_OUTCOME,
    ATTR_PAGE_NUMBER,
    ATTR_RECORD_COUNT,
    ATTR_RESUME_ID,
    ATTR_TENANT_COUNT,
    Tracer,
    create_tracer,
)
from logsync.pagination import MultiSourcePaginator, PageSource
from logsync.sources.interface import RecordSource
from logsync.types import Cursor

logger = logging.getLogger(__name__)


class LogSyncEngine:
    """
    Drives one reconciliation run from resume decision to completion.

    State machine:
        IDLE -> RESUME_DECISION -> PAGING -> DONE
        RESUME_DECISION -> DONE when there is nothing to migrate

    Example:
        >>> engine = LogSyncEngine(
        ...     source=SQLRecordSource(db_engine),
        ...     gateway=ElasticsearchIndexGateway(es_client),
        ...     config=SyncConfig(start_timestamp="2024-01-01T00:00:00"),
        ... )
        >>> result = await engine.run()

    Attributes:
        _source: Record source reading the relational store
        _gateway: Index gateway writing the search index
        _config: Immutable run configuration
        _paginator: Shared-cursor paginator over both query branches
        _state: Current SyncState
    """

    def __init__(
        self,
        source: RecordSource,
        gateway: IndexGateway,
        config: SyncConfig | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the engine.

        Args:
            source: Record source to read log rows from
            gateway: Index gateway to write records to
            config: Run configuration (defaults to SyncConfig())
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._source = source
        self._gateway = gateway
        self._config = config or SyncConfig()
        self._paginator = MultiSourcePaginator(
            [
                PageSource("direct", source.batch_with_direct_launch),
                PageSource("joined", source.batch_without_direct_launch),
            ],
            batch_size=self._config.max_batch_size,
            tracer=self._tracer,
        )
        self._state = SyncState.IDLE

    @property
    def state(self) -> SyncState:
        """Current state of the engine."""
        return self._state

    @property
    def config(self) -> SyncConfig:
        """Run configuration."""
        return self._config

    async def run(self) -> SyncResult:
        """
        Run one reconciliation pass.

        Returns:
            SyncResult describing how the run concluded

        Raises:
            SourceUnavailableError: If a database query fails
            IndexUnavailableError: If the index cannot be probed or written
            LogSyncError: For any other failure during the run
        """
        started_at = datetime.now(UTC)
        with self._tracer.span(
            "logsync.engine.run",
            {ATTR_BATCH_SIZE: self._config.max_batch_size},
        ) as span:
            logger.info(
                "Starting log synchronization (batch size %d, start timestamp %s)",
                self._config.max_batch_size,
                self._config.start_timestamp,
            )
            try:
                result = await self._run(started_at)
            except LogSyncError as e:
                logger.error("Log synchronization failed: %s", e)
                raise
            except Exception as e:
                logger.error("Log synchronization failed: %s", e)
                raise LogSyncError(f"Log synchronization failed: {e}") from e
            finally:
                self._state = SyncState.DONE

            if span is not None:
                span.set_attribute(ATTR_OUTCOME, result.outcome.value)
                span.set_attribute(ATTR_RECORD_COUNT, result.records_migrated)
                if result.resume_id is not None:
                    span.set_attribute(ATTR_RESUME_ID, result.resume_id)
            return result

    async def _run(self, started_at: datetime) -> SyncResult:
        self._state = SyncState.RESUME_DECISION

        database_first_id = await self._source.earliest_id()
        if database_first_id is None:
            logger.info("No logs in the database, nothing to migrate")
            return self._finish(SyncOutcome.NO_DATA, started_at)

        if self._config.start_timestamp is not None:
            resume_id = await self._source.id_near(self._config.start_timestamp)
            if resume_id is None:
                logger.info(
                    "No logs at or after %s, nothing to migrate",
                    self._config.start_timestamp.isoformat(),
                )
                return self._finish(SyncOutcome.RESUME_POINT_NOT_FOUND, started_at)
        else:
            earliest_indexed = await self._gateway.fetch_earliest_record()
            if earliest_indexed is None:
                logger.info("Index is empty, migrating all logs from the database")
                return await self._migrate(None, started_at)
            resume_id = earliest_indexed.id

        if database_first_id == resume_id:
            logger.info("Index already has the same logs as the database")
            return self._finish(SyncOutcome.ALREADY_IN_SYNC, started_at, resume_id=resume_id)

        if database_first_id > resume_id:
            logger.warning(
                "Index resume point %d is older than the earliest database log %d, "
                "leaving the index untouched",
                resume_id,
                database_first_id,
            )
            return self._finish(SyncOutcome.INDEX_AHEAD, started_at, resume_id=resume_id)

        logger.info("Migrating logs older than id %d", resume_id)
        return await self._migrate(resume_id, started_at)

    async def _migrate(self, resume_id: Cursor, started_at: datetime) -> SyncResult:
        self._state = SyncState.PAGING
        pages = 0
        bulk_saves = 0
        records_migrated = 0

        async for page in self._paginator.pages(resume_id):
            pages += 1
            with self._tracer.span(
                "logsync.engine.save_page",
                {
                    ATTR_PAGE_NUMBER: pages,
                    ATTR_RECORD_COUNT: page.records_count,
                    ATTR_TENANT_COUNT: len(page.groups),
                },
            ):
                if page.groups:
                    await self._gateway.bulk_save(page.groups)
                    bulk_saves += 1
                    records_migrated += page.records_count

            logger.debug(
                "Page %d: %d records across %d tenants, next cursor %s",
                pages,
                page.records_count,
                len(page.groups),
                page.next_cursor,
            )

        result = self._finish(
            SyncOutcome.MIGRATED,
            started_at,
            resume_id=resume_id,
            pages=pages,
            bulk_saves=bulk_saves,
            records_migrated=records_migrated,
        )
        logger.info(
            "Migration completed at %s: %d records in %d pages",
            result.completed_at.isoformat(),
            records_migrated,
            pages,
        )
        return result

    def _finish(
        self,
        outcome: SyncOutcome,
        started_at: datetime,
        *,
        resume_id: Cursor = None,
        pages: int = 0,
        bulk_saves: int = 0,
        records_migrated: int = 0,
    ) -> SyncResult:
        self._state = SyncState.DONE
        return SyncResult(
            outcome=outcome,
            started_at=started_at,
            completed_at=datetime.now(UTC),
            resume_id=resume_id,
            pages=pages,
            bulk_saves=bulk_saves,
            records_migrated=records_migrated,
        )
