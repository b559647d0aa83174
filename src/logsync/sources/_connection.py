"""
Connection handling helper for record source queries.

Lets the SQL record source accept either an AsyncEngine (a connection is
opened per query) or an AsyncConnection owned by the caller.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine


@asynccontextmanager
async def execute_with_connection(
    conn: AsyncConnection | AsyncEngine,
) -> AsyncIterator[AsyncConnection]:
    """
    Yield a connection for read-only queries.

    An AsyncEngine gets a fresh connection that is released on exit; the
    source only reads, so no transaction is begun. An AsyncConnection is
    yielded as is and its transaction stays with the caller.

    Example:
        >>> async with execute_with_connection(self._conn) as conn:
        ...     result = await conn.execute(text(SELECT_EARLIEST_ID))
    """
    if isinstance(conn, AsyncEngine):
        async with conn.connect() as connection:
            yield connection
    else:
        yield conn
