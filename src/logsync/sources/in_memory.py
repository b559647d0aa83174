"""
In-memory record source implementation.

Useful for testing and development. Mirrors the SQL record source's
semantics over plain Python lists, including the test item join used to
resolve missing launch ids.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from logsync.models import LogRecord
from logsync.observability import ATTR_BATCH_SIZE, ATTR_CURSOR, Tracer, create_tracer
from logsync.sources.interface import RecordSource
from logsync.types import Cursor, LogId


@dataclass(frozen=True)
class TestItem:
    """A row of the test item table: its launch and the item it retries."""

    __test__ = False  # not a pytest test class

    item_id: int
    launch_id: int | None = None
    retry_of: int | None = None


class InMemoryRecordSource(RecordSource):
    """
    In-memory implementation of the record source.

    Log records with ``launch_id=None`` are resolved through the registered
    test items, following at most one ``retry_of`` hop; records whose launch
    cannot be resolved never appear in either batch shape.

    Example:
        >>> source = InMemoryRecordSource()
        >>> source.add_test_item(TestItem(item_id=1, launch_id=10))
        >>> source.add_records([record_a, record_b])
        >>> await source.batch_with_direct_launch(limit=100)

    Attributes:
        queries: Log of (operation, before_id, after_id) calls, for assertions
    """

    def __init__(
        self,
        records: list[LogRecord] | None = None,
        items: list[TestItem] | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled

        self._records: dict[int, LogRecord] = {}
        self._items: dict[int, TestItem] = {}
        self.queries: list[tuple[str, Cursor, Cursor]] = []

        self.add_records(records or [])
        for item in items or []:
            self.add_test_item(item)

    def add_records(self, records: list[LogRecord]) -> None:
        """Insert or replace log records."""
        for record in records:
            self._records[record.id] = record

    def add_test_item(self, item: TestItem) -> None:
        """Insert or replace a test item row."""
        self._items[item.item_id] = item

    def clear(self) -> None:
        """Remove all records, items and the query log."""
        self._records.clear()
        self._items.clear()
        self.queries.clear()

    async def earliest_id(self) -> LogId | None:
        self.queries.append(("earliest_id", None, None))
        return min(self._records, default=None)

    async def id_near(self, timestamp: datetime) -> LogId | None:
        self.queries.append(("id_near", None, None))
        return min(
            (record.id for record in self._records.values() if record.timestamp >= timestamp),
            default=None,
        )

    async def batch_with_direct_launch(
        self,
        limit: int,
        before_id: Cursor = None,
        after_id: Cursor = None,
    ) -> list[LogRecord]:
        with self._tracer.span(
            "logsync.in_memory_source.batch_with_direct_launch",
            {ATTR_BATCH_SIZE: limit, ATTR_CURSOR: before_id if before_id is not None else -1},
        ):
            self.queries.append(("batch_with_direct_launch", before_id, after_id))
            candidates = [r for r in self._records.values() if r.launch_id is not None]
            return self._page(candidates, limit, before_id, after_id)

    async def batch_without_direct_launch(
        self,
        limit: int,
        before_id: Cursor = None,
        after_id: Cursor = None,
    ) -> list[LogRecord]:
        with self._tracer.span(
            "logsync.in_memory_source.batch_without_direct_launch",
            {ATTR_BATCH_SIZE: limit, ATTR_CURSOR: before_id if before_id is not None else -1},
        ):
            self.queries.append(("batch_without_direct_launch", before_id, after_id))
            candidates = []
            for record in self._records.values():
                if record.launch_id is not None:
                    continue
                launch_id = self._resolve_launch(record.item_id)
                if launch_id is not None:
                    candidates.append(record.model_copy(update={"launch_id": launch_id}))
            return self._page(candidates, limit, before_id, after_id)

    def _resolve_launch(self, item_id: int) -> int | None:
        item = self._items.get(item_id)
        if item is None:
            return None
        if item.launch_id is not None:
            return item.launch_id
        # One retry_of hop only
        if item.retry_of is not None:
            original = self._items.get(item.retry_of)
            if original is not None:
                return original.launch_id
        return None

    @staticmethod
    def _page(
        records: list[LogRecord],
        limit: int,
        before_id: Cursor,
        after_id: Cursor,
    ) -> list[LogRecord]:
        selected = [
            r
            for r in records
            if (before_id is None or r.id < before_id) and (after_id is None or r.id > after_id)
        ]
        selected.sort(key=lambda r: r.id, reverse=True)
        return selected[:limit]
