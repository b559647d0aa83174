"""
Basic Usage Example

This example walks through a log synchronization run without any external
services:
- Seeding an in-memory record source with logs and test items
- Running the engine against an empty in-memory index
- Re-running to show that a converged index is left alone
- Backfilling after older logs appear in the database

Run with: python examples/basic_usage.py
"""

import asyncio
import logging
from datetime import datetime, timedelta

from logsync import (
    InMemoryIndexGateway,
    InMemoryRecordSource,
    LogRecord,
    LogSyncEngine,
    SyncConfig,
    TestItem,
)

BASE_TIME = datetime(2024, 1, 1, 9, 0)


def make_log(log_id: int, project_id: int, item_id: int, launch_id: int | None) -> LogRecord:
    return LogRecord(
        id=log_id,
        timestamp=BASE_TIME + timedelta(seconds=log_id),
        message=f"step {log_id} finished",
        item_id=item_id,
        launch_id=launch_id,
        tenant_id=project_id,
    )


# =============================================================================
# Step 1: Seed the database
# =============================================================================
# Logs written by a launch carry its id directly. Logs of nested steps only
# know their test item, and retried items point at the item they retry.


def seed_source() -> InMemoryRecordSource:
    source = InMemoryRecordSource(
        items=[
            TestItem(item_id=1, launch_id=100),
            TestItem(item_id=2, launch_id=200),
            TestItem(item_id=3, retry_of=2),
        ],
        enable_tracing=False,
    )
    source.add_records(
        [make_log(i, project_id=1, item_id=1, launch_id=100) for i in range(20, 30)]
    )
    source.add_records(
        [make_log(i, project_id=2, item_id=3, launch_id=None) for i in range(10, 20)]
    )
    return source


async def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("Log Synchronization Example")
    print("=" * 60)

    source = seed_source()
    gateway = InMemoryIndexGateway()
    config = SyncConfig(max_batch_size=4)

    # =========================================================================
    # Step 2: First run migrates the whole history
    # =========================================================================
    print("\n1. Migrating into an empty index...")
    result = await LogSyncEngine(source, gateway, config, enable_tracing=False).run()
    print(f"   Outcome: {result.outcome.value}")
    print(f"   Records: {result.records_migrated} in {result.bulk_saves} bulk saves")
    for project_id in (1, 2):
        records = gateway.records_for(project_id)
        launches = sorted({r.launch_id for r in records})
        print(f"   Project {project_id}: {len(records)} logs, launches {launches}")

    # =========================================================================
    # Step 3: Second run finds nothing to do
    # =========================================================================
    print("\n2. Running again...")
    result = await LogSyncEngine(source, gateway, config, enable_tracing=False).run()
    print(f"   Outcome: {result.outcome.value}")

    # =========================================================================
    # Step 4: Older logs appear, e.g. restored from an archive
    # =========================================================================
    print("\n3. Backfilling older logs...")
    source.add_records(
        [make_log(i, project_id=1, item_id=1, launch_id=100) for i in range(1, 10)]
    )
    result = await LogSyncEngine(source, gateway, config, enable_tracing=False).run()
    print(f"   Outcome: {result.outcome.value} below id {result.resume_id}")
    print(f"   Records: {result.records_migrated}")
    print(f"   Index now holds ids {gateway.saved_ids()[0]}..{gateway.saved_ids()[-1]}")

    print("\n" + "=" * 60)
    print("Example completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
