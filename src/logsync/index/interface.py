"""
Index gateway interface.

The index gateway is the write side of a reconciliation run. It answers
"what is the oldest record already indexed" and persists pages of records
partitioned by tenant.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from logsync.models import LogRecord
from logsync.types import TenantId


class IndexGateway(ABC):
    """Abstract base class for search index gateways."""

    @abstractmethod
    async def fetch_earliest_record(self) -> LogRecord | None:
        """
        Get the record with the smallest id currently in the index.

        Returns:
            The earliest indexed record, or None if the index is empty

        Raises:
            IndexUnavailableError: If the index cannot be queried
        """
        pass

    @abstractmethod
    async def bulk_save(self, groups: Mapping[TenantId, Sequence[LogRecord]]) -> int:
        """
        Persist records grouped by tenant id.

        A failure for any tenant group fails the whole call; there is no
        partial acknowledgment.

        Args:
            groups: Mapping of tenant id to that tenant's records

        Returns:
            Number of records written

        Raises:
            IndexUnavailableError: If any write fails
        """
        pass
