"""
Standard span attributes for logsync.

Attribute names are shared by the record source, index gateway and engine
so traces of a reconciliation run can be filtered consistently. Database
attributes follow OpenTelemetry semantic conventions.

Example:
    >>> from logsync.observability.attributes import ATTR_CURSOR, ATTR_BATCH_SIZE
    >>>
    >>> with tracer.span(
    ...     "logsync.record_source.batch_with_direct_launch",
    ...     {ATTR_CURSOR: before_id, ATTR_BATCH_SIZE: limit},
    ... ):
    ...     pass
"""

# =============================================================================
# Pagination Attributes
# =============================================================================

ATTR_CURSOR = "logsync.cursor"
"""Exclusive upper id bound of the current page (integer, -1 if unbounded)."""

ATTR_LOWER_BOUND = "logsync.lower_bound"
"""Exclusive lower id bound of a gap-fill query (integer)."""

ATTR_BATCH_SIZE = "logsync.batch_size"
"""Maximum records fetched per query branch (integer)."""

ATTR_RECORD_COUNT = "logsync.record.count"
"""Number of records in an operation (integer)."""

ATTR_PAGE_NUMBER = "logsync.page.number"
"""One-based page index within a run (integer)."""

ATTR_SOURCE_NAME = "logsync.source.name"
"""Name of the query branch (string)."""

# =============================================================================
# Tenant Attributes
# =============================================================================

ATTR_TENANT_ID = "logsync.tenant.id"
"""Project identifier of a bulk-write group (string)."""

ATTR_TENANT_COUNT = "logsync.tenant.count"
"""Number of tenant groups in a bulk write (integer)."""

# =============================================================================
# Run Attributes
# =============================================================================

ATTR_RESUME_ID = "logsync.resume.id"
"""Id the paging loop resumes below (integer)."""

ATTR_OUTCOME = "logsync.outcome"
"""SyncOutcome value of a finished run (string)."""

# =============================================================================
# Database Attributes (OTEL semantic)
# =============================================================================

ATTR_DB_SYSTEM = "db.system"
"""Database system identifier (e.g., 'postgresql', 'sqlite', 'elasticsearch')."""

ATTR_DB_OPERATION = "db.operation"
"""Database operation name (e.g., 'SELECT', 'bulk')."""

ATTR_INDEX_NAME = "logsync.index.name"
"""Search index name or pattern (string)."""


__all__ = [
    "ATTR_BATCH_SIZE",
    "ATTR_CURSOR",
    "ATTR_DB_OPERATION",
    "ATTR_DB_SYSTEM",
    "ATTR_INDEX_NAME",
    "ATTR_LOWER_BOUND",
    "ATTR_OUTCOME",
    "ATTR_PAGE_NUMBER",
    "ATTR_RECORD_COUNT",
    "ATTR_RESUME_ID",
    "ATTR_SOURCE_NAME",
    "ATTR_TENANT_COUNT",
    "ATTR_TENANT_ID",
]
