"""
Batch merging for paged log migration.

A page is fetched from several query branches (logs with a direct launch
id, and logs whose launch is resolved through a join). Each branch returns
records newest first. Merging turns a page into:

- per-tenant groups, the unit the index gateway writes
- the shared cursor for the next page

The cursor is the smallest last id across branches. An empty branch has
nothing left below the bound, so it contributes the sentinel (None), which
compares above every real id. When every branch is empty the cursor is the
sentinel and paging stops.
"""

from __future__ import annotations

from collections.abc import Sequence

from logsync.models import LogRecord
from logsync.types import Cursor, TenantId


def group_by_tenant(*batches: Sequence[LogRecord]) -> dict[TenantId, list[LogRecord]]:
    """
    Group the records of one page by tenant id.

    Records of earlier batches come first within each tenant, and the order
    inside every batch is preserved. Tenants appear in first-seen order.

    Args:
        *batches: Record lists of one page, e.g. ``(direct, joined)``

    Returns:
        Mapping of tenant id to that tenant's records

    Example:
        >>> groups = group_by_tenant(direct, joined)
        >>> for tenant_id, records in groups.items():
        ...     print(tenant_id, [r.id for r in records])
    """
    groups: dict[TenantId, list[LogRecord]] = {}
    for batch in batches:
        for record in batch:
            groups.setdefault(record.tenant_id, []).append(record)
    return groups


def next_cursor(*batches: Sequence[LogRecord]) -> Cursor:
    """
    Compute the exclusive upper bound for the next page.

    Args:
        *batches: Record lists of one page, each ordered by id descending

    Returns:
        The smallest last id across non-empty batches, or None (the sentinel)
        when every batch is empty

    Example:
        >>> next_cursor([r9, r8], [r7, r6])
        6
        >>> next_cursor([], []) is None
        True
    """
    last_ids = [batch[-1].id for batch in batches if batch]
    return min(last_ids, default=None)


__all__ = [
    "group_by_tenant",
    "next_cursor",
]
