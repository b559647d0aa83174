"""
Observability utilities for logsync.

Provides the composition-based Tracer used by the record source, index
gateway and engine, plus standard span attribute names.

Note:
    OpenTelemetry is an optional dependency. Without it, create_tracer()
    returns a NullTracer and spans cost nothing.
"""

from logsync.observability.attributes import (
    ATTR_BATCH_SIZE,
    ATTR_CURSOR,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_INDEX_NAME,
    ATTR_LOWER_BOUND,
    ATTR_OUTCOME,
    ATTR_PAGE_NUMBER,
    ATTR_RECORD_COUNT,
    ATTR_RESUME_ID,
    ATTR_SOURCE_NAME,
    ATTR_TENANT_COUNT,
    ATTR_TENANT_ID,
)
from logsync.observability.tracer import (
    OTEL_AVAILABLE,
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)

__all__ = [
    # Availability
    "OTEL_AVAILABLE",
    # Tracer
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes
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
