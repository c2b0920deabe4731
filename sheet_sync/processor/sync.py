"""
Sync orchestrator: reconciles a Google Sheet's prices with a Shopify store.
"""

import asyncio
import logging
import traceback
from typing import Callable, Dict, Optional, Tuple

from pydantic import BaseModel

from ..config import settings
from ..db import (
    SQLiteDatabase, Store, GoogleSheet, SyncSession, SyncLog, SessionStatus, LogStatus
)
from ..pricing import format_price
from ..sheets import GoogleSheetsClient, SheetRow
from ..shopify import ShopifyClient, ShopifyVariant
from .broadcast import Broadcaster, EventSink
from .events import (
    LogEntry, SyncProgressEvent, SyncLogEvent, SyncCompleteEvent, SyncErrorEvent
)
from .registry import RunRegistry

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Error starting a sync."""
    pass


class SyncAlreadyRunning(SyncError):
    """The store already has a sync in progress."""
    pass


class SyncNotFound(SyncError):
    """The store or sheet configuration does not exist."""
    pass


class SyncProgress(BaseModel):
    """Snapshot of a running session."""
    session_id: str
    store_id: str
    total_skus: int
    processed_skus: int
    updated_skus: int
    not_found_skus: int
    error_count: int
    status: SessionStatus


ShopifyFactory = Callable[[Store], ShopifyClient]
SheetsFactory = Callable[[GoogleSheet], GoogleSheetsClient]


def create_shopify_client(store: Store) -> ShopifyClient:
    return ShopifyClient(store.shopify_url, store.access_token)


def create_sheets_client(sheet: GoogleSheet) -> GoogleSheetsClient:
    return GoogleSheetsClient(sheet.service_account_json)


class SyncOrchestrator:
    """
    Runs at most one sync per store and streams its progress.

    start_sync returns as soon as the session exists; the rows are then
    processed one at a time in a background task. Stop requests are
    honoured between rows.
    """

    def __init__(
        self,
        db: SQLiteDatabase,
        registry: Optional[RunRegistry] = None,
        broadcaster: Optional[Broadcaster] = None,
        shopify_factory: ShopifyFactory = create_shopify_client,
        sheets_factory: SheetsFactory = create_sheets_client,
        row_delay: Optional[float] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            db: Storage for sessions and logs
            registry: Running-sync registry (a private one by default)
            broadcaster: Event fan-out (a private one by default)
            shopify_factory: Builds one Shopify client per run
            sheets_factory: Builds one Sheets client per run
            row_delay: Pause between rows in seconds (defaults to settings)
        """
        self.db = db
        self.registry = registry or RunRegistry()
        self.broadcaster = broadcaster or Broadcaster()
        self.shopify_factory = shopify_factory
        self.sheets_factory = sheets_factory
        self.row_delay = settings.row_delay if row_delay is None else row_delay

        # Handles are kept only to log failures of finished tasks
        self._tasks: Dict[str, asyncio.Task] = {}

    def subscribe(self, sink: EventSink) -> None:
        self.broadcaster.subscribe(sink)

    def unsubscribe(self, sink: EventSink) -> None:
        self.broadcaster.unsubscribe(sink)

    def is_running(self, store_id: str) -> bool:
        return self.registry.is_running(store_id)

    async def start_sync(self, store_id: str, sheet_id: str) -> str:
        """
        Start a sync of a sheet into a store.

        Args:
            store_id: Store to update
            sheet_id: GoogleSheet configuration id

        Returns:
            The new session id

        Raises:
            SyncAlreadyRunning: If the store already has a sync in progress
            SyncNotFound: If the store or sheet does not exist
        """
        session = SyncSession(store_id=store_id, sheet_id=sheet_id)

        # Claimed before any await so concurrent starts cannot both pass
        if not self.registry.try_acquire(store_id, session.id):
            raise SyncAlreadyRunning("Sync already running for this store")

        try:
            store = await self.db.get_store(store_id)
            sheet = await self.db.get_sheet(sheet_id)

            if not store or not sheet:
                raise SyncNotFound("Store or sheet not found")

            await self.db.create_session(session)
        except BaseException:
            self.registry.release(store_id, session.id)
            raise

        logger.info(f"Starting sync for store '{store.name}' (session: {session.id})")

        task = asyncio.create_task(
            self._perform_sync(session, store, sheet), name=f"sync-{session.id}"
        )
        self._tasks[session.id] = task
        task.add_done_callback(self._on_task_done)

        return session.id

    def _on_task_done(self, task: asyncio.Task) -> None:
        for session_id, known in list(self._tasks.items()):
            if known is task:
                del self._tasks[session_id]

        if task.cancelled():
            logger.warning(f"Sync task {task.get_name()} was cancelled")
            return

        error = task.exception()
        if error is not None:
            logger.error(f"Sync task {task.get_name()} crashed: {error}", exc_info=error)

    async def stop_sync(self, store_id: str) -> None:
        """Ask the store's sync to stop at the next row and mark its session stopped."""
        self.registry.release(store_id)

        current = await self.db.get_current_session(store_id)
        if current:
            await self.db.finish_session(current.id, SessionStatus.STOPPED)
            logger.info(f"Stop requested for store {store_id} (session: {current.id})")

    async def clear_session(self, store_id: str) -> None:
        """Stop any sync of the store and tell subscribers to reset."""
        await self.stop_sync(store_id)
        await self.broadcaster.publish(SyncCompleteEvent(store_id=store_id))

    async def get_sync_status(self, store_id: str) -> Optional[SyncProgress]:
        """Progress of the store's running session, or None if there is none."""
        session = await self.db.get_current_session(store_id)
        if not session:
            return None

        return SyncProgress(
            session_id=session.id,
            store_id=session.store_id,
            total_skus=session.total_skus,
            processed_skus=session.processed_skus,
            updated_skus=session.updated_skus,
            not_found_skus=session.not_found_skus,
            error_count=session.error_count,
            status=session.status,
        )

    async def _perform_sync(self, session: SyncSession, store: Store, sheet: GoogleSheet) -> None:
        shopify: Optional[ShopifyClient] = None
        sheets: Optional[GoogleSheetsClient] = None

        stats = {
            "processed_skus": 0,
            "updated_skus": 0,
            "not_found_skus": 0,
            "error_count": 0,
        }

        try:
            shopify = self.shopify_factory(store)
            sheets = self.sheets_factory(sheet)

            # Step 1: Make sure the variant id column has its header
            await sheets.update_sheet_header(sheet.sheet_id, sheet.sheet_name)

            # Step 2: Read every priced row up front
            rows = await sheets.get_sheet_data(sheet.sheet_id, sheet.sheet_name)
            total = len(rows)
            await self.db.update_session(session.id, total_skus=total)
            logger.info(f"Processing {total} SKUs for store '{store.name}'")

            # Step 3: Reconcile row by row
            for row in rows:
                if not self.registry.is_running(store.id, session.id):
                    logger.info(f"Sync for store '{store.name}' stopped before SKU {row.sku}")
                    break

                await self.broadcaster.publish(SyncProgressEvent(
                    session_id=session.id,
                    store_id=store.id,
                    current_sku=row.sku,
                    processed_skus=stats["processed_skus"],
                    total_skus=total,
                ))

                log, variant = await self._process_row(session.id, row, shopify)
                await self.db.create_log(log)

                if variant is not None:
                    await sheets.update_variant_id(
                        sheet.sheet_id, sheet.sheet_name, row.row, variant.id
                    )

                if log.status == LogStatus.SUCCESS:
                    stats["updated_skus"] += 1
                elif log.status == LogStatus.NOT_FOUND:
                    stats["not_found_skus"] += 1
                else:
                    stats["error_count"] += 1
                stats["processed_skus"] += 1

                await self.broadcaster.publish(SyncLogEvent(
                    session_id=session.id,
                    store_id=store.id,
                    log=LogEntry(
                        sku=log.sku,
                        status=log.status,
                        old_price=log.old_price,
                        new_price=log.new_price,
                        error=log.error_message,
                        timestamp=log.timestamp,
                    ),
                ))

                await self.db.update_session(session.id, **stats)

                if self.row_delay > 0:
                    await asyncio.sleep(self.row_delay)

            # Step 4: Finalize
            if self.registry.is_running(store.id, session.id):
                status = SessionStatus.COMPLETED
            else:
                status = SessionStatus.STOPPED
            await self.db.finish_session(session.id, status)

            logger.info(
                f"Sync {status.value} for store '{store.name}': "
                f"{stats['updated_skus']} updated, "
                f"{stats['not_found_skus']} not found, "
                f"{stats['error_count']} errors"
            )

            await self.broadcaster.publish(SyncCompleteEvent(
                session_id=session.id, store_id=store.id
            ))

        except Exception as e:
            logger.error(f"Sync failed for store '{store.name}': {e}")
            logger.debug(traceback.format_exc())

            await self.db.finish_session(session.id, SessionStatus.FAILED)
            await self.broadcaster.publish(SyncErrorEvent(
                session_id=session.id, store_id=store.id, error=str(e) or type(e).__name__
            ))

        finally:
            self.registry.release(store.id, session.id)
            if shopify is not None:
                await shopify.close()
            if sheets is not None:
                await sheets.close()

    async def _process_row(
        self,
        session_id: str,
        row: SheetRow,
        shopify: ShopifyClient,
    ) -> Tuple[SyncLog, Optional[ShopifyVariant]]:
        """
        Look up and update one SKU.

        Returns:
            The log to record, and the variant when its price was updated
        """
        new_price = format_price(row.variant_price)
        new_compare_price = format_price(row.compare_at_price)

        if new_price is None:
            return SyncLog(
                session_id=session_id,
                sku=row.sku,
                status=LogStatus.ERROR,
                error_message=f"Invalid price: {row.variant_price}",
            ), None

        try:
            variant = await shopify.find_variant_by_sku(row.sku)

            if variant is None:
                logger.debug(f"SKU {row.sku} not found")
                return SyncLog(
                    session_id=session_id,
                    sku=row.sku,
                    status=LogStatus.NOT_FOUND,
                    new_price=new_price,
                    new_compare_price=new_compare_price,
                ), None

            old_price = format_price(variant.price)
            old_compare_price = format_price(variant.compare_at_price)

            await shopify.update_variant_price(
                variant.id, row.variant_price, row.compare_at_price
            )

        except Exception as e:
            logger.error(f"Error processing SKU {row.sku}: {e}")
            return SyncLog(
                session_id=session_id,
                sku=row.sku,
                status=LogStatus.ERROR,
                new_price=new_price,
                new_compare_price=new_compare_price,
                error_message=str(e) or type(e).__name__,
            ), None

        return SyncLog(
            session_id=session_id,
            sku=row.sku,
            status=LogStatus.SUCCESS,
            old_price=old_price,
            new_price=new_price,
            old_compare_price=old_compare_price,
            new_compare_price=new_compare_price,
            shopify_variant_id=variant.id,
        ), variant
