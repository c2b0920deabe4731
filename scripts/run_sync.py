#!/usr/bin/env python3
"""
Run one sheet-to-Shopify sync from the command line and wait for it to finish.
Usage: python scripts/run_sync.py <store_id> <sheet_config_id>

Useful from cron: 0 1 * * * cd /path/to/app && /path/to/venv/bin/python scripts/run_sync.py STORE SHEET

This runs the sync as a standalone script, not through the web server.
"""

import argparse
import asyncio
import logging
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sheet_sync.config import settings
from sheet_sync.db import SQLiteDatabase, SessionStatus
from sheet_sync.processor import SyncOrchestrator, SyncError

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


class TerminalEventWaiter:
    """Sink that wakes up when the watched session ends."""

    def __init__(self):
        self.session_id = None
        self.finished = asyncio.Event()

    async def deliver(self, event: dict) -> None:
        if event["type"] == "sync_log":
            log = event["log"]
            logger.info(f"  {log['sku']}: {log['status']}")
        elif event["type"] in ("sync_complete", "sync_error"):
            if event.get("session_id") == self.session_id:
                self.finished.set()


async def main(store_id: str, sheet_id: str) -> int:
    db = SQLiteDatabase(settings.database_path)
    await db.initialize()

    try:
        orchestrator = SyncOrchestrator(db)
        waiter = TerminalEventWaiter()
        orchestrator.subscribe(waiter)

        try:
            waiter.session_id = await orchestrator.start_sync(store_id, sheet_id)
        except SyncError as e:
            logger.error(f"Could not start sync: {e}")
            return 1

        await waiter.finished.wait()

        session = await db.get_session(waiter.session_id)
        logger.info(
            f"Sync {session.status.value}: {session.processed_skus}/{session.total_skus} processed, "
            f"{session.updated_skus} updated, {session.not_found_skus} not found, "
            f"{session.error_count} errors"
        )
        return 0 if session.status == SessionStatus.COMPLETED else 1

    finally:
        await db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Sync prices from a Google Sheet to Shopify")
    parser.add_argument("store_id", help="Store id")
    parser.add_argument("sheet_id", help="Google Sheet configuration id")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.store_id, args.sheet_id)))
