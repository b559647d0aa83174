"""
Data models for the log synchronization system.

Models in this module:

Enums:
    - SyncState: Convergence engine lifecycle states
    - SyncOutcome: How a finished run concluded

Core Models:
    - LogRecord: One log line read from the relational store
    - PageResult: Merged output of one page across all query branches
    - SyncResult: Final result of a reconciliation run
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from logsync.types import Cursor, LogId, TenantId


class LogRecord(BaseModel):
    """
    A single log line to migrate from the database to the index.

    Records are read-only: they are materialized per batch from the
    relational store and discarded once handed to the index gateway.

    Attributes:
        id: Identity of the log row; defines migration order and the cursor
        timestamp: When the log entry was created
        message: Log payload
        item_id: Test item that produced the log
        launch_id: Run the item belongs to (None when it must be resolved via join)
        tenant_id: Project that owns the log; used for output partitioning

    Example:
        >>> record = LogRecord.from_row(
        ...     {
        ...         "id": 42,
        ...         "log_time": datetime(2024, 1, 1, 12, 0),
        ...         "log_message": "step passed",
        ...         "item_id": 7,
        ...         "launch_id": 3,
        ...         "project_id": 1,
        ...     }
        ... )
        >>> record.tenant_id
        1
    """

    model_config = ConfigDict(frozen=True)

    id: LogId = Field(..., description="Log row identity")
    timestamp: datetime = Field(..., description="Log creation time")
    message: str = Field(default="", description="Log payload")
    item_id: int = Field(..., description="Owning test item")
    launch_id: int | None = Field(default=None, description="Owning launch, if known")
    tenant_id: TenantId = Field(..., description="Owning project")

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        # SQLite hands timestamps back as text
        if isinstance(value, str):
            return datetime.fromisoformat(value)
        return value

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> Any:
        return "" if value is None else value

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> LogRecord:
        """
        Build a record from a ``log`` query row.

        Args:
            row: Mapping with ``id``, ``log_time``, ``log_message``,
                ``item_id``, ``launch_id`` and ``project_id`` keys

        Returns:
            The mapped LogRecord
        """
        return cls(
            id=row["id"],
            timestamp=row["log_time"],
            message=row["log_message"],
            item_id=row["item_id"],
            launch_id=row["launch_id"],
            tenant_id=row["project_id"],
        )

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> LogRecord:
        """Build a record from an indexed document body."""
        return cls(
            id=document["id"],
            timestamp=document["log_time"],
            message=document.get("message"),
            item_id=document["item_id"],
            launch_id=document.get("launch_id"),
            tenant_id=document["project_id"],
        )

    def to_document(self) -> dict[str, Any]:
        """Render the record as the document body stored in the index."""
        return {
            "id": self.id,
            "log_time": self.timestamp.isoformat(),
            "message": self.message,
            "item_id": self.item_id,
            "launch_id": self.launch_id,
            "project_id": self.tenant_id,
        }


class SyncState(Enum):
    """
    Convergence engine states.

    State machine transitions:
        IDLE -> RESUME_DECISION -> PAGING -> DONE
                       |
                       +--------------------> DONE (nothing to migrate)
    """

    IDLE = "idle"
    RESUME_DECISION = "resume_decision"
    PAGING = "paging"
    DONE = "done"

    @property
    def is_terminal(self) -> bool:
        """Check if the engine has finished its run."""
        return self == SyncState.DONE


class SyncOutcome(Enum):
    """
    How a reconciliation run concluded.

    Attributes:
        NO_DATA: The database holds no log rows.
        ALREADY_IN_SYNC: Database and index agree on the oldest record.
        RESUME_POINT_NOT_FOUND: No log is at or after the configured start time.
        INDEX_AHEAD: The index resume point is older than the database's
            earliest row; left untouched.
        MIGRATED: The paging loop ran to the sentinel.
    """

    NO_DATA = "no_data"
    ALREADY_IN_SYNC = "already_in_sync"
    RESUME_POINT_NOT_FOUND = "resume_point_not_found"
    INDEX_AHEAD = "index_ahead"
    MIGRATED = "migrated"


@dataclass(frozen=True)
class PageResult:
    """
    Merged result of one page across all query branches.

    Attributes:
        groups: Records of the page partitioned by tenant id
        next_cursor: Exclusive upper bound for the next page (None when exhausted)
        source_counts: Number of records each branch contributed
    """

    groups: dict[TenantId, list[LogRecord]]
    next_cursor: Cursor
    source_counts: dict[str, int] = field(default_factory=dict)

    @property
    def records_count(self) -> int:
        """Total records across all tenant groups."""
        return sum(len(records) for records in self.groups.values())

    @property
    def is_exhausted(self) -> bool:
        """Check if the page carries the sentinel cursor."""
        return self.next_cursor is None


@dataclass
class SyncResult:
    """
    Result of a reconciliation run.

    Attributes:
        outcome: How the run concluded
        resume_id: Upper bound paging started from (None for full history)
        pages: Number of pages fetched
        bulk_saves: Number of bulk-save calls issued to the index
        records_migrated: Number of records handed to the index
        started_at: When the run started
        completed_at: When the run finished
    """

    outcome: SyncOutcome
    started_at: datetime
    completed_at: datetime
    resume_id: Cursor = None
    pages: int = 0
    bulk_saves: int = 0
    records_migrated: int = 0

    @property
    def duration_seconds(self) -> float:
        """Wall-clock duration of the run."""
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def is_noop(self) -> bool:
        """Check if the run wrote nothing to the index."""
        return self.bulk_saves == 0
