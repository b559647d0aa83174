"""Common type definitions for the logsync library."""

# Identity of a log row; also the pagination cursor
LogId = int

# Project that owns a log record
TenantId = int

# Exclusive upper id bound of a page; None means "no bound"
Cursor = LogId | None
