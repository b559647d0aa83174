"""Library exceptions for the logsync package."""


class LogSyncError(Exception):
    """Base exception for logsync library."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SourceUnavailableError(LogSyncError):
    """Raised when the relational store cannot be reached or a query fails."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"Record source failed during {operation}: {message}")


class IndexUnavailableError(LogSyncError):
    """
    Raised when the search index cannot be probed or written to.

    Attributes:
        operation: Name of the gateway operation that failed
        tenant_id: Tenant whose bulk write failed, if the failure is tenant-scoped
    """

    def __init__(self, operation: str, message: str, tenant_id: int | None = None) -> None:
        self.operation = operation
        self.tenant_id = tenant_id
        tenant_info = f" (tenant {tenant_id})" if tenant_id is not None else ""
        super().__init__(f"Index gateway failed during {operation}{tenant_info}: {message}")


class ConfigurationError(LogSyncError):
    """Raised when sync settings cannot be turned into a valid configuration."""

    pass
