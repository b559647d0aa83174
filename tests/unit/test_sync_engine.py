"""
Unit tests for LogSyncEngine.

Tests cover:
- Resume decision (empty database, in sync, start timestamp, index ahead)
- Paging and bulk saves per page
- Idempotence of repeated runs
- Error propagation and state transitions
- Tracing spans
"""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from logsync.config import SyncConfig
from logsync.engine import LogSyncEngine
from logsync.exceptions import IndexUnavailableError, LogSyncError, SourceUnavailableError
from logsync.index.in_memory import InMemoryIndexGateway
from logsync.models import SyncOutcome, SyncState
from logsync.observability import MockTracer
from logsync.sources.in_memory import InMemoryRecordSource, TestItem


def make_engine(source, gateway, **config):
    return LogSyncEngine(source, gateway, SyncConfig(**config), enable_tracing=False)


def page_ids(call):
    return sorted(r.id for records in call.values() for r in records)


class TestLogSyncEngineInit:
    """Tests for engine construction."""

    def test_initial_state(self, in_memory_source, in_memory_gateway):
        engine = LogSyncEngine(in_memory_source, in_memory_gateway, enable_tracing=False)

        assert engine.state == SyncState.IDLE
        assert engine.config == SyncConfig()


class TestResumeDecision:
    """Tests for how a run decides where to start."""

    @pytest.mark.asyncio
    async def test_empty_database_is_noop(self, in_memory_source, in_memory_gateway):
        """Test that an empty database issues no bulk saves."""
        engine = make_engine(in_memory_source, in_memory_gateway)

        result = await engine.run()

        assert result.outcome == SyncOutcome.NO_DATA
        assert result.is_noop
        assert in_memory_gateway.bulk_calls == []
        assert engine.state == SyncState.DONE

    @pytest.mark.asyncio
    async def test_already_in_sync(self, record_factory, in_memory_gateway):
        """Test that equal earliest ids in database and index mean nothing to do."""
        source = InMemoryRecordSource(
            [record_factory(i) for i in range(5, 9)], enable_tracing=False
        )
        gateway = InMemoryIndexGateway([record_factory(5)])
        engine = make_engine(source, gateway)

        result = await engine.run()

        assert result.outcome == SyncOutcome.ALREADY_IN_SYNC
        assert result.resume_id == 5
        assert gateway.bulk_calls == []
        assert not any(op.startswith("batch") for op, _, _ in source.queries)

    @pytest.mark.asyncio
    async def test_already_in_sync_logs(self, record_factory, caplog):
        source = InMemoryRecordSource([record_factory(5)], enable_tracing=False)
        gateway = InMemoryIndexGateway([record_factory(5)])

        with caplog.at_level("INFO", logger="logsync.engine"):
            await make_engine(source, gateway).run()

        assert "already has the same logs" in caplog.text

    @pytest.mark.asyncio
    async def test_resumes_below_earliest_indexed_record(self, record_factory):
        """Test that only records older than the index's earliest record are migrated."""
        source = InMemoryRecordSource(
            [record_factory(i) for i in range(1, 11)], enable_tracing=False
        )
        gateway = InMemoryIndexGateway([record_factory(i) for i in range(6, 11)])
        engine = make_engine(source, gateway, max_batch_size=100)

        result = await engine.run()

        assert result.outcome == SyncOutcome.MIGRATED
        assert result.resume_id == 6
        assert [page_ids(call) for call in gateway.bulk_calls] == [[1, 2, 3, 4, 5]]
        assert gateway.saved_ids() == list(range(1, 11))

    @pytest.mark.asyncio
    async def test_start_timestamp_sets_resume_point(self, record_factory, in_memory_gateway):
        """Test that a configured start time resumes below the first log at or after it."""
        source = InMemoryRecordSource(
            [record_factory(i) for i in range(1, 11)], enable_tracing=False
        )
        engine = make_engine(
            source,
            in_memory_gateway,
            start_timestamp=record_factory(7).timestamp,
        )

        result = await engine.run()

        assert result.resume_id == 7
        assert in_memory_gateway.saved_ids() == [1, 2, 3, 4, 5, 6]
        assert ("id_near", None, None) in source.queries

    @pytest.mark.asyncio
    async def test_start_timestamp_without_matching_log(self, record_factory, in_memory_gateway):
        """Test that a start time after every log resolves to nothing to migrate."""
        source = InMemoryRecordSource(
            [record_factory(i) for i in range(1, 6)], enable_tracing=False
        )
        engine = make_engine(source, in_memory_gateway, start_timestamp=datetime(2030, 1, 1))

        result = await engine.run()

        assert result.outcome == SyncOutcome.RESUME_POINT_NOT_FOUND
        assert result.is_noop
        assert in_memory_gateway.bulk_calls == []

    @pytest.mark.asyncio
    async def test_index_ahead_of_database_is_noop(self, record_factory, caplog):
        """Test that an index holding older records than the database is left alone."""
        source = InMemoryRecordSource(
            [record_factory(i) for i in range(10, 13)], enable_tracing=False
        )
        gateway = InMemoryIndexGateway([record_factory(3)])

        with caplog.at_level("WARNING", logger="logsync.engine"):
            result = await make_engine(source, gateway).run()

        assert result.outcome == SyncOutcome.INDEX_AHEAD
        assert gateway.bulk_calls == []
        assert "leaving the index untouched" in caplog.text


class TestPaging:
    """Tests for the paging loop."""

    @pytest.mark.asyncio
    async def test_full_history_in_pages(self, record_factory, in_memory_gateway):
        """Test that an empty index gets every database log, one bulk save per page."""
        source = InMemoryRecordSource(
            [record_factory(i) for i in range(1, 6)], enable_tracing=False
        )
        engine = make_engine(source, in_memory_gateway, max_batch_size=2)

        result = await engine.run()

        assert result.outcome == SyncOutcome.MIGRATED
        assert result.resume_id is None
        assert [page_ids(call) for call in in_memory_gateway.bulk_calls] == [
            [4, 5],
            [2, 3],
            [1],
        ]
        assert result.bulk_saves == 3
        assert result.pages == 4
        assert result.records_migrated == 5
        batch_bounds = [
            before for op, before, _ in source.queries if op == "batch_with_direct_launch"
        ]
        assert batch_bounds == [None, 4, 2, 1]

    @pytest.mark.asyncio
    async def test_groups_pages_by_tenant(self, record_factory, in_memory_gateway):
        source = InMemoryRecordSource(
            [
                record_factory(4, tenant_id=1),
                record_factory(3, tenant_id=2),
                record_factory(2, tenant_id=1, launch_id=None, item_id=200),
            ],
            items=[TestItem(200, launch_id=77)],
            enable_tracing=False,
        )

        await make_engine(source, in_memory_gateway).run()

        (call,) = in_memory_gateway.bulk_calls
        assert {tenant: [r.id for r in rs] for tenant, rs in call.items()} == {1: [4, 2], 2: [3]}
        assert in_memory_gateway.records_for(1)[0].launch_id == 77

    @pytest.mark.asyncio
    async def test_uneven_branches_migrate_everything(self, record_factory, in_memory_gateway):
        """Test that no log is skipped when one branch is much denser than the other."""
        direct = [record_factory(i) for i in range(20, 40)]
        joined = [record_factory(i, launch_id=None, item_id=200) for i in range(1, 20, 3)]
        source = InMemoryRecordSource(
            direct + joined, items=[TestItem(200, launch_id=5)], enable_tracing=False
        )

        result = await make_engine(source, in_memory_gateway, max_batch_size=3).run()

        expected = sorted(r.id for r in direct + joined)
        assert in_memory_gateway.saved_ids() == expected
        assert result.records_migrated == len(expected)

    @pytest.mark.asyncio
    async def test_bulk_saves_stay_within_batch_size(self, record_factory, in_memory_gateway):
        """Test that recent direct logs above a few old joined logs are written in bounded pages."""
        direct = [record_factory(i) for i in range(101, 2101)]
        joined = [record_factory(i, launch_id=None, item_id=200) for i in (1, 2)]
        source = InMemoryRecordSource(
            direct + joined, items=[TestItem(200, launch_id=5)], enable_tracing=False
        )

        result = await make_engine(source, in_memory_gateway, max_batch_size=10).run()

        sizes = [sum(len(rs) for rs in call.values()) for call in in_memory_gateway.bulk_calls]
        assert max(sizes) <= 10 * 2
        assert result.records_migrated == 2002
        assert in_memory_gateway.saved_ids() == [1, 2] + list(range(101, 2101))

    @pytest.mark.asyncio
    async def test_retried_item_uses_original_launch(self, record_factory, in_memory_gateway):
        source = InMemoryRecordSource(
            [record_factory(1, launch_id=None, item_id=201)],
            items=[TestItem(200, launch_id=50), TestItem(201, retry_of=200)],
            enable_tracing=False,
        )

        await make_engine(source, in_memory_gateway).run()

        assert in_memory_gateway.records_for(1)[0].launch_id == 50

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, record_factory, in_memory_gateway):
        """Test that re-running after a completed migration writes nothing."""
        source = InMemoryRecordSource(
            [record_factory(i) for i in range(1, 8)], enable_tracing=False
        )
        await make_engine(source, in_memory_gateway, max_batch_size=3).run()
        saves = len(in_memory_gateway.bulk_calls)

        result = await make_engine(source, in_memory_gateway, max_batch_size=3).run()

        assert result.outcome == SyncOutcome.ALREADY_IN_SYNC
        assert len(in_memory_gateway.bulk_calls) == saves

    @pytest.mark.asyncio
    async def test_rerun_after_failure_completes(self, record_factory, in_memory_gateway):
        """Test that a failed run can be repeated until the index converges."""
        source = InMemoryRecordSource(
            [record_factory(i) for i in range(1, 8)], enable_tracing=False
        )
        in_memory_gateway.fail_on_save = True
        with pytest.raises(IndexUnavailableError):
            await make_engine(source, in_memory_gateway, max_batch_size=2).run()

        in_memory_gateway.fail_on_save = False
        await make_engine(source, in_memory_gateway, max_batch_size=2).run()

        assert in_memory_gateway.saved_ids() == list(range(1, 8))


class TestErrors:
    """Tests for error propagation."""

    @pytest.mark.asyncio
    async def test_source_error_propagates(self, in_memory_gateway):
        source = AsyncMock()
        source.earliest_id.side_effect = SourceUnavailableError("earliest_id", "down")
        engine = make_engine(source, in_memory_gateway)

        with pytest.raises(SourceUnavailableError):
            await engine.run()

        assert engine.state == SyncState.DONE

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, in_memory_gateway):
        """Test that unexpected failures surface as LogSyncError with the cause chained."""
        source = AsyncMock()
        source.earliest_id.side_effect = RuntimeError("boom")
        engine = make_engine(source, in_memory_gateway)

        with pytest.raises(LogSyncError) as exc_info:
            await engine.run()

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert "boom" in str(exc_info.value)


class TestTracing:
    """Tests for engine spans."""

    @pytest.mark.asyncio
    async def test_spans(self, record_factory, in_memory_gateway):
        tracer = MockTracer()
        source = InMemoryRecordSource([record_factory(1)], enable_tracing=False)
        engine = LogSyncEngine(source, in_memory_gateway, tracer=tracer)

        await engine.run()

        assert tracer.span_names[0] == "logsync.engine.run"
        assert tracer.span_names.count("logsync.engine.save_page") == 2
        assert "logsync.paginator.fetch_page" in tracer.span_names
