"""
In-memory index gateway implementation.

Useful for testing and development. Documents are keyed by record id per
tenant, so saving the same record twice overwrites it like the
Elasticsearch gateway does.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from logsync.exceptions import IndexUnavailableError
from logsync.index.interface import IndexGateway
from logsync.models import LogRecord
from logsync.types import TenantId


class InMemoryIndexGateway(IndexGateway):
    """
    In-memory implementation of the index gateway.

    Example:
        >>> gateway = InMemoryIndexGateway()
        >>> await gateway.bulk_save({1: [record]})
        1
        >>> gateway.saved_ids()
        [record.id]

    Attributes:
        bulk_calls: Copy of every groups mapping passed to bulk_save
        fail_on_save: When set, bulk_save raises IndexUnavailableError
    """

    def __init__(self, records: list[LogRecord] | None = None) -> None:
        self._documents: dict[int, dict[int, LogRecord]] = {}
        self.bulk_calls: list[dict[int, list[LogRecord]]] = []
        self.fail_on_save = False
        for record in records or []:
            self._documents.setdefault(record.tenant_id, {})[record.id] = record

    async def fetch_earliest_record(self) -> LogRecord | None:
        records = [r for docs in self._documents.values() for r in docs.values()]
        return min(records, key=lambda r: r.id, default=None)

    async def bulk_save(self, groups: Mapping[TenantId, Sequence[LogRecord]]) -> int:
        if self.fail_on_save:
            raise IndexUnavailableError("bulk_save", "index is unavailable")
        self.bulk_calls.append({tenant: list(records) for tenant, records in groups.items()})
        written = 0
        for tenant_id, records in groups.items():
            documents = self._documents.setdefault(tenant_id, {})
            for record in records:
                documents[record.id] = record
                written += 1
        return written

    def records_for(self, tenant_id: int) -> list[LogRecord]:
        """Get a tenant's indexed records ordered by id."""
        return sorted(self._documents.get(tenant_id, {}).values(), key=lambda r: r.id)

    def saved_ids(self) -> list[int]:
        """Get the ids of every indexed record, ascending."""
        return sorted(record_id for docs in self._documents.values() for record_id in docs)
