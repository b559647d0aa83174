"""
Multi-source pagination with a shared cursor.

MultiSourcePaginator walks several independent, newest-first record
sources through the same descending id space. Every page queries all
sources below one shared cursor, merges the results by tenant, and
advances the cursor to the smallest last id across sources (see
logsync.merger).

Because the cursor follows the source that reached furthest down, a
source that filled its page and stopped higher up may still hold rows
between its own last id and the new cursor. Those rows are fetched with a
bounded range query (gap fill) and yielded as extra pages of at most
``batch_size`` records before the cursor moves past them.

Example:
    >>> paginator = MultiSourcePaginator(
    ...     [
    ...         PageSource("direct", source.batch_with_direct_launch),
    ...         PageSource("joined", source.batch_without_direct_launch),
    ...     ],
    ...     batch_size=1000,
    ... )
    >>> async for page in paginator.pages(before_id=None):
    ...     await gateway.bulk_save(page.groups)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass

from logsync.merger import group_by_tenant, next_cursor
from logsync.models import LogRecord, PageResult
from logsync.observability import (
    ATTR_BATCH_SIZE,
    ATTR_CURSOR,
    ATTR_LOWER_BOUND,
    ATTR_SOURCE_NAME,
    Tracer,
    create_tracer,
)
from logsync.types import Cursor, LogId

logger = logging.getLogger(__name__)

# (limit, before_id, after_id) -> records ordered by id descending
FetchBatch = Callable[[int, Cursor, Cursor], Awaitable[list[LogRecord]]]


@dataclass(frozen=True)
class PageSource:
    """
    A named, newest-first record source.

    Attributes:
        name: Label used in logs, spans and PageResult.source_counts
        fetch: Coroutine function taking (limit, before_id, after_id)
    """

    name: str
    fetch: FetchBatch


class MultiSourcePaginator:
    """
    Pages through N record sources with one shared cursor.

    Attributes:
        _sources: Sources queried for every page, in merge order
        _batch_size: Maximum records requested from a source per query
    """

    def __init__(
        self,
        sources: Sequence[PageSource],
        batch_size: int,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the paginator.

        Args:
            sources: Sources to merge; earlier sources come first within a tenant group
            batch_size: Maximum records per source query (must be > 0)
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.

        Raises:
            ValueError: If no sources are given or batch_size is not positive
        """
        if not sources:
            raise ValueError("MultiSourcePaginator requires at least one source")
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        self._sources = list(sources)
        self._batch_size = batch_size
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled

    @property
    def batch_size(self) -> int:
        """Maximum records per source query."""
        return self._batch_size

    @property
    def source_names(self) -> list[str]:
        """Names of the merged sources, in merge order."""
        return [source.name for source in self._sources]

    async def pages(self, before_id: Cursor = None) -> AsyncIterator[PageResult]:
        """
        Yield pages until the sentinel cursor is reached.

        Each merged page is followed by the gap-fill pages of the sources
        that filled their batch above the shared cursor, so no page holds
        more than ``batch_size`` records per source. The last page yielded
        is always exhausted (``next_cursor is None``) and may be empty.

        Args:
            before_id: Exclusive upper bound of the first page (None for newest rows)

        Yields:
            PageResult per page; no record appears in more than one page
        """
        cursor = before_id
        while True:
            page, batches = await self._fetch_merged(cursor)
            yield page
            if page.is_exhausted:
                return

            seen = {r.id for records in page.groups.values() for r in records}
            for source, batch in zip(self._sources, batches, strict=True):
                async for fill in self._fill_gap(source, batch, page.next_cursor, seen):
                    yield fill
            cursor = page.next_cursor

    async def fetch_page(self, before_id: Cursor) -> PageResult:
        """
        Fetch and merge one page from every source.

        Rows a full source holds between its last id and the returned
        cursor are not part of the page; ``pages()`` yields them as
        separate gap-fill pages.

        Args:
            before_id: Exclusive upper id bound (None for no bound)

        Returns:
            Tenant groups of the page and the cursor for the next one
        """
        page, _ = await self._fetch_merged(before_id)
        return page

    async def _fetch_merged(self, before_id: Cursor) -> tuple[PageResult, list[list[LogRecord]]]:
        with self._tracer.span(
            "logsync.paginator.fetch_page",
            {
                ATTR_BATCH_SIZE: self._batch_size,
                ATTR_CURSOR: before_id if before_id is not None else -1,
            },
        ):
            batches = list(
                await asyncio.gather(
                    *(source.fetch(self._batch_size, before_id, None) for source in self._sources)
                )
            )

        unique = _drop_duplicates(batches)
        page = PageResult(
            groups=group_by_tenant(*unique),
            next_cursor=next_cursor(*batches),
            source_counts={
                source.name: len(batch)
                for source, batch in zip(self._sources, unique, strict=True)
            },
        )
        return page, batches

    async def _fill_gap(
        self,
        source: PageSource,
        batch: list[LogRecord],
        cursor: LogId,
        seen: set[LogId],
    ) -> AsyncIterator[PageResult]:
        """
        Yield a source's rows between the shared cursor and its last id.

        Only a full batch can leave such rows behind; a short batch means
        the source has nothing else below the page bound. Rows come out in
        chunks of at most ``batch_size``, one page per chunk.
        """
        if len(batch) < self._batch_size or batch[-1].id <= cursor:
            return

        upper = batch[-1].id
        filled = 0
        while True:
            with self._tracer.span(
                "logsync.paginator.fill_gap",
                {ATTR_SOURCE_NAME: source.name, ATTR_CURSOR: upper, ATTR_LOWER_BOUND: cursor},
            ):
                chunk = await source.fetch(self._batch_size, upper, cursor)

            records = [r for r in chunk if r.id not in seen]
            seen.update(r.id for r in records)
            if records:
                filled += len(records)
                yield PageResult(
                    groups=group_by_tenant(records),
                    next_cursor=cursor,
                    source_counts={source.name: len(records)},
                )
            if len(chunk) < self._batch_size:
                break
            upper = chunk[-1].id

        logger.debug(
            "Filled %d records from %s between ids %d and %d",
            filled,
            source.name,
            cursor,
            batch[-1].id,
        )


def _drop_duplicates(batches: list[list[LogRecord]]) -> list[list[LogRecord]]:
    """Keep the first occurrence of each record id across the page."""
    seen: set[LogId] = set()
    result = []
    for batch in batches:
        unique = []
        for record in batch:
            if record.id in seen:
                continue
            seen.add(record.id)
            unique.append(record)
        result.append(unique)
    return result


__all__ = [
    "FetchBatch",
    "MultiSourcePaginator",
    "PageSource",
]
