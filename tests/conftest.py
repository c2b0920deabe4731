"""
Shared fixtures and fakes.
"""

import asyncio
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional

import pytest

from sheet_sync.db import SQLiteDatabase, Store, GoogleSheet
from sheet_sync.sheets import SheetRow
from sheet_sync.shopify import ShopifyApiError, ShopifyVariant


class FakeShopify:
    """Stands in for ShopifyClient with an in-memory catalog."""

    def __init__(
        self,
        variants: Dict[str, ShopifyVariant],
        failing_variant_ids=(),
        on_find: Optional[Callable[[str], Awaitable[None]]] = None,
    ):
        self.variants = variants
        self.failing_variant_ids = set(failing_variant_ids)
        self.on_find = on_find
        self.updates: List[tuple] = []
        self.closed = False

    async def find_variant_by_sku(self, sku: str) -> Optional[ShopifyVariant]:
        if self.on_find:
            await self.on_find(sku)
        return self.variants.get(sku)

    async def update_variant_price(self, variant_id, price, compare_at_price=None):
        if variant_id in self.failing_variant_ids:
            raise ShopifyApiError(500, "Internal Server Error")
        self.updates.append((variant_id, price, compare_at_price))
        return self.variants_by_id()[variant_id]

    def variants_by_id(self) -> Dict[str, ShopifyVariant]:
        return {v.id: v for v in self.variants.values()}

    async def close(self) -> None:
        self.closed = True


class FakeSheets:
    """Stands in for GoogleSheetsClient with fixed rows."""

    def __init__(self, rows: List[SheetRow], header_error: Optional[Exception] = None):
        self.rows = rows
        self.header_error = header_error
        self.written_ids: List[tuple] = []
        self.closed = False

    async def update_sheet_header(self, sheet_id, sheet_name="Sheet1") -> None:
        if self.header_error:
            raise self.header_error

    async def get_sheet_data(self, sheet_id, sheet_name="Sheet1") -> List[SheetRow]:
        return list(self.rows)

    async def update_variant_id(self, sheet_id, sheet_name, row_number, variant_id) -> None:
        self.written_ids.append((row_number, variant_id))

    async def close(self) -> None:
        self.closed = True


class EventCollector:
    """Sink that records events and signals the end of a run."""

    def __init__(self):
        self.events: List[dict] = []
        self.done = asyncio.Event()

    async def deliver(self, event: dict) -> None:
        self.events.append(event)
        if event["type"] in ("sync_complete", "sync_error"):
            self.done.set()

    def of_type(self, event_type: str) -> List[dict]:
        return [e for e in self.events if e["type"] == event_type]

    async def wait(self, timeout: float = 5.0) -> None:
        await asyncio.wait_for(self.done.wait(), timeout)
        # Let the sync task run its cleanup
        await asyncio.sleep(0.01)


def make_variant(variant_id: str, sku: str, price: str, compare_at_price: Optional[str] = None) -> ShopifyVariant:
    return ShopifyVariant(
        id=variant_id,
        sku=sku,
        price=price,
        compare_at_price=compare_at_price,
        product_id=f"p-{variant_id}",
    )


def make_row(sku: str, price: str, row: int, compare_at_price: Optional[str] = None) -> SheetRow:
    return SheetRow(
        sku=sku,
        variant_price=Decimal(price),
        compare_at_price=Decimal(compare_at_price) if compare_at_price else None,
        row=row,
    )


@pytest.fixture
async def db(tmp_path):
    database = SQLiteDatabase(str(tmp_path / "test.db"))
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
async def store(db):
    return await db.create_store(Store(
        name="Test Store",
        shopify_url="test-store.myshopify.com",
        access_token="shpat_test",
    ))


@pytest.fixture
async def sheet(db, store):
    return await db.create_sheet(GoogleSheet(
        store_id=store.id,
        sheet_id="spreadsheet-123",
        sheet_name="Prices",
    ))
