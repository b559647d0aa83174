"""
Run one log synchronization pass.

Configuration comes from ``LOGSYNC_*`` environment variables (or a .env
file in the working directory); see logsync.config.SyncSettings.

Run with: python -m logsync
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any

from elasticsearch import AsyncElasticsearch
from sqlalchemy.ext.asyncio import create_async_engine

from logsync.config import SyncConfig, SyncSettings, load_settings
from logsync.engine import LogSyncEngine
from logsync.exceptions import ConfigurationError, LogSyncError
from logsync.index.elasticsearch import ElasticsearchIndexGateway
from logsync.models import SyncResult
from logsync.sources.sql import SQLRecordSource

logger = logging.getLogger("logsync")


async def run_once(settings: SyncSettings) -> SyncResult:
    """
    Build the database and index clients from settings and run the engine once.

    Both clients are closed when the run ends, whether it succeeds or not.
    """
    config = SyncConfig.from_settings(settings)

    es_kwargs: dict[str, Any] = {}
    if settings.elasticsearch_username:
        password = settings.elasticsearch_password
        es_kwargs["basic_auth"] = (
            settings.elasticsearch_username,
            password.get_secret_value() if password else "",
        )

    db_engine = create_async_engine(settings.database_url)
    client = AsyncElasticsearch(settings.elasticsearch_url, **es_kwargs)
    try:
        engine = LogSyncEngine(
            SQLRecordSource(db_engine, enable_tracing=settings.enable_tracing),
            ElasticsearchIndexGateway(
                client,
                index_prefix=settings.index_prefix,
                enable_tracing=settings.enable_tracing,
            ),
            config,
            enable_tracing=settings.enable_tracing,
        )
        return await engine.run()
    finally:
        await client.close()
        await db_engine.dispose()


def main() -> int:
    """Entrypoint invoked by ``python -m logsync`` or the console script."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        logger.error("Invalid configuration: %s", e)
        return 1

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        result = asyncio.run(run_once(settings))
    except LogSyncError as e:
        logger.error("Synchronization aborted: %s", e)
        return 1

    logger.info(
        "Synchronization finished: %s (%d records, %d bulk saves)",
        result.outcome.value,
        result.records_migrated,
        result.bulk_saves,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
