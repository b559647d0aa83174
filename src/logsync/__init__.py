"""
logsync - Incremental log synchronization from a relational store to Elasticsearch.

This library provides:
- Record sources reading ReportPortal log rows (SQL and in-memory backends)
- Index gateways writing per-tenant log indices (Elasticsearch and in-memory)
- A shared-cursor multi-source paginator with per-tenant batch merging
- LogSyncEngine, the one-shot reconciliation run
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("logsync")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from logsync.config import DEFAULT_MAX_BATCH_SIZE, SyncConfig, SyncSettings, load_settings
from logsync.engine import LogSyncEngine
from logsync.exceptions import (
    ConfigurationError,
    IndexUnavailableError,
    LogSyncError,
    SourceUnavailableError,
)
from logsync.index import (
    ElasticsearchIndexGateway,
    IndexGateway,
    InMemoryIndexGateway,
)
from logsync.merger import group_by_tenant, next_cursor
from logsync.models import LogRecord, PageResult, SyncOutcome, SyncResult, SyncState
from logsync.pagination import MultiSourcePaginator, PageSource
from logsync.sources import (
    InMemoryRecordSource,
    RecordSource,
    SQLRecordSource,
    TestItem,
)
from logsync.types import Cursor, LogId, TenantId

__all__ = [
    # Version
    "__version__",
    # Types
    "Cursor",
    "LogId",
    "TenantId",
    # Configuration
    "DEFAULT_MAX_BATCH_SIZE",
    "SyncConfig",
    "SyncSettings",
    "load_settings",
    # Exceptions
    "LogSyncError",
    "SourceUnavailableError",
    "IndexUnavailableError",
    "ConfigurationError",
    # Models
    "LogRecord",
    "PageResult",
    "SyncOutcome",
    "SyncResult",
    "SyncState",
    # Record sources
    "RecordSource",
    "SQLRecordSource",
    "InMemoryRecordSource",
    "TestItem",
    # Index gateways
    "IndexGateway",
    "ElasticsearchIndexGateway",
    "InMemoryIndexGateway",
    # Merging and pagination
    "group_by_tenant",
    "next_cursor",
    "MultiSourcePaginator",
    "PageSource",
    # Engine
    "LogSyncEngine",
]
