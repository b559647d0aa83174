"""
Elasticsearch index gateway implementation.

Writes log records into one index per tenant (``{index_prefix}{tenant_id}``)
with the async Elasticsearch client. Documents use the record id as
``_id`` and the ``index`` bulk operation, so replaying a page overwrites the
same documents instead of duplicating them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from elasticsearch import ApiError, AsyncElasticsearch, NotFoundError, TransportError
from elasticsearch.helpers import BulkIndexError, async_bulk

from logsync.exceptions import IndexUnavailableError
from logsync.index.interface import IndexGateway
from logsync.models import LogRecord
from logsync.observability import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_INDEX_NAME,
    ATTR_RECORD_COUNT,
    ATTR_TENANT_ID,
    Tracer,
    create_tracer,
)
from logsync.types import TenantId

logger = logging.getLogger(__name__)

DEFAULT_INDEX_PREFIX = "logs-"


class ElasticsearchIndexGateway(IndexGateway):
    """
    Index gateway backed by Elasticsearch.

    Example:
        >>> from elasticsearch import AsyncElasticsearch
        >>>
        >>> client = AsyncElasticsearch("http://localhost:9200")
        >>> gateway = ElasticsearchIndexGateway(client, index_prefix="logs-")
        >>> earliest = await gateway.fetch_earliest_record()

    Attributes:
        _client: Async Elasticsearch client (owned by the caller)
        _index_prefix: Prefix of the per-tenant index names
        _refresh: Refresh policy passed to bulk requests, if any
    """

    def __init__(
        self,
        client: AsyncElasticsearch,
        *,
        index_prefix: str = DEFAULT_INDEX_PREFIX,
        refresh: bool | str | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            client: Async Elasticsearch client
            index_prefix: Prefix for per-tenant index names (default "logs-")
            refresh: Optional refresh policy for bulk writes (True, False, "wait_for")
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._client = client
        self._index_prefix = index_prefix
        self._refresh = refresh
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled

    def index_name(self, tenant_id: int) -> str:
        """Get the index holding a tenant's logs."""
        return f"{self._index_prefix}{tenant_id}"

    @property
    def index_pattern(self) -> str:
        """Wildcard pattern matching every tenant index."""
        return f"{self._index_prefix}*"

    async def fetch_earliest_record(self) -> LogRecord | None:
        with self._tracer.span(
            "logsync.index_gateway.fetch_earliest_record",
            {
                ATTR_DB_SYSTEM: "elasticsearch",
                ATTR_DB_OPERATION: "search",
                ATTR_INDEX_NAME: self.index_pattern,
            },
        ):
            try:
                response = await self._client.search(
                    index=self.index_pattern,
                    sort=[{"id": {"order": "asc", "unmapped_type": "long"}}],
                    size=1,
                    ignore_unavailable=True,
                    allow_no_indices=True,
                )
            except NotFoundError:
                return None
            except (ApiError, TransportError) as e:
                raise IndexUnavailableError("fetch_earliest_record", str(e)) from e

            hits = response["hits"]["hits"]
            if not hits:
                return None
            return LogRecord.from_document(hits[0]["_source"])

    async def bulk_save(self, groups: Mapping[TenantId, Sequence[LogRecord]]) -> int:
        written = 0
        for tenant_id, records in groups.items():
            if not records:
                continue
            written += await self._save_tenant(tenant_id, records)
        return written

    async def _save_tenant(self, tenant_id: int, records: Sequence[LogRecord]) -> int:
        index = self.index_name(tenant_id)
        with self._tracer.span(
            "logsync.index_gateway.bulk_save",
            {
                ATTR_DB_SYSTEM: "elasticsearch",
                ATTR_DB_OPERATION: "bulk",
                ATTR_INDEX_NAME: index,
                ATTR_TENANT_ID: str(tenant_id),
                ATTR_RECORD_COUNT: len(records),
            },
        ):
            kwargs: dict[str, Any] = {}
            if self._refresh is not None:
                kwargs["refresh"] = self._refresh
            try:
                success, _ = await async_bulk(
                    self._client,
                    self._actions(index, records),
                    raise_on_error=True,
                    **kwargs,
                )
            except BulkIndexError as e:
                raise IndexUnavailableError(
                    "bulk_save",
                    f"{len(e.errors)} document(s) failed to index into {index}",
                    tenant_id=tenant_id,
                ) from e
            except (ApiError, TransportError) as e:
                raise IndexUnavailableError("bulk_save", str(e), tenant_id=tenant_id) from e

            logger.debug("Indexed %d records into %s", success, index)
            return success

    @staticmethod
    def _actions(index: str, records: Sequence[LogRecord]) -> Iterator[dict[str, Any]]:
        for record in records:
            yield {
                "_op_type": "index",
                "_index": index,
                "_id": str(record.id),
                "_source": record.to_document(),
            }

    def __repr__(self) -> str:
        """String representation."""
        tracing = "enabled" if self._enable_tracing else "disabled"
        return f"ElasticsearchIndexGateway(index_prefix={self._index_prefix!r}, tracing={tracing})"
