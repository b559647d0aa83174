"""
Record source interface.

The record source reads log rows from the relational store. It exposes the
query shapes the convergence engine needs:

- earliest_id: smallest log id in the store
- id_near: smallest log id at or after a point in time
- batch_with_direct_launch: newest-first batch of logs carrying a launch id
- batch_without_direct_launch: newest-first batch of logs whose launch is
  resolved through their test item (and its retry_of original)

Both batch shapes accept an exclusive upper bound (``before_id``) and an
exclusive lower bound (``after_id``); either may be omitted.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from logsync.models import LogRecord
from logsync.types import Cursor, LogId


class RecordSource(ABC):
    """
    Abstract base class for log record sources.

    Implementations must return batches ordered by id descending and honor
    the ``id < before_id`` / ``id > after_id`` bounds strictly.
    """

    @abstractmethod
    async def earliest_id(self) -> LogId | None:
        """
        Get the smallest log id in the store.

        Returns:
            The smallest id, or None if the log table is empty

        Raises:
            SourceUnavailableError: If the query fails
        """
        pass

    @abstractmethod
    async def id_near(self, timestamp: datetime) -> LogId | None:
        """
        Get the smallest log id whose log time is at or after ``timestamp``.

        Args:
            timestamp: Point in time to resume from

        Returns:
            The matching id, or None if every log is older than ``timestamp``

        Raises:
            SourceUnavailableError: If the query fails
        """
        pass

    @abstractmethod
    async def batch_with_direct_launch(
        self,
        limit: int,
        before_id: Cursor = None,
        after_id: Cursor = None,
    ) -> list[LogRecord]:
        """
        Get up to ``limit`` logs that carry a launch id, newest first.

        Args:
            limit: Maximum number of records to return
            before_id: Exclusive upper id bound (None for no bound)
            after_id: Exclusive lower id bound (None for no bound)

        Returns:
            Records ordered by id descending

        Raises:
            SourceUnavailableError: If the query fails
        """
        pass

    @abstractmethod
    async def batch_without_direct_launch(
        self,
        limit: int,
        before_id: Cursor = None,
        after_id: Cursor = None,
    ) -> list[LogRecord]:
        """
        Get up to ``limit`` logs lacking a launch id, newest first.

        The launch of each record is resolved through its test item, or,
        for a retried item, through the item it retries.

        Args:
            limit: Maximum number of records to return
            before_id: Exclusive upper id bound (None for no bound)
            after_id: Exclusive lower id bound (None for no bound)

        Returns:
            Records ordered by id descending, with launch_id filled in

        Raises:
            SourceUnavailableError: If the query fails
        """
        pass
