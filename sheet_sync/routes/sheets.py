"""
Google Sheet configuration routes.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ..dependencies import get_db, require_auth
from ..db import GoogleSheet, GoogleSheetCreate, GoogleSheetUpdate, GoogleSheetPublic
from ..processor import create_sheets_client

router = APIRouter(prefix="/api/sheets", dependencies=[Depends(require_auth)])

PREVIEW_ROWS = 10


class SheetPreviewRow(BaseModel):
    sku: str
    variant_price: float
    compare_at_price: Optional[float] = None
    row: int


def _public(sheet: GoogleSheet) -> GoogleSheetPublic:
    return GoogleSheetPublic(
        **sheet.model_dump(exclude={"service_account_json"}),
        has_credentials=bool(sheet.service_account_json)
    )


async def _get_sheet_or_404(sheet_id: str) -> GoogleSheet:
    sheet = await get_db().get_sheet(sheet_id)
    if not sheet:
        raise HTTPException(status_code=404, detail="Sheet not found")
    return sheet


@router.get("", response_model=List[GoogleSheetPublic])
async def list_sheets(store_id: Optional[str] = Query(None)):
    return [_public(sheet) for sheet in await get_db().get_sheets(store_id)]


@router.post("", response_model=GoogleSheetPublic)
async def create_sheet(body: GoogleSheetCreate):
    db = get_db()

    if not await db.get_store(body.store_id):
        raise HTTPException(status_code=404, detail="Store not found")

    sheet = GoogleSheet(
        store_id=body.store_id,
        sheet_id=body.sheet_id.strip(),
        sheet_name=body.sheet_name.strip() or "Sheet1",
        service_account_json=body.service_account_json
    )
    return _public(await db.create_sheet(sheet))


@router.get("/{sheet_id}", response_model=GoogleSheetPublic)
async def get_sheet(sheet_id: str):
    return _public(await _get_sheet_or_404(sheet_id))


@router.put("/{sheet_id}", response_model=GoogleSheetPublic)
async def update_sheet(sheet_id: str, body: GoogleSheetUpdate):
    await _get_sheet_or_404(sheet_id)
    return _public(await get_db().update_sheet(sheet_id, **body.model_dump(exclude_none=True)))


@router.delete("/{sheet_id}")
async def delete_sheet(sheet_id: str):
    await _get_sheet_or_404(sheet_id)
    await get_db().delete_sheet(sheet_id)
    return {"success": True}


@router.post("/{sheet_id}/test-access")
async def test_access(sheet_id: str):
    """Check that the service account can open the spreadsheet."""
    sheet = await _get_sheet_or_404(sheet_id)

    async with create_sheets_client(sheet) as client:
        accessible = await client.test_access(sheet.sheet_id)

    return {"accessible": accessible}


@router.get("/{sheet_id}/preview", response_model=List[SheetPreviewRow])
async def preview_sheet(sheet_id: str):
    """First parsed rows of the sheet, as the sync would see them."""
    sheet = await _get_sheet_or_404(sheet_id)

    try:
        async with create_sheets_client(sheet) as client:
            rows = await client.get_sheet_data(sheet.sheet_id, sheet.sheet_name)
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"Failed to fetch sheet preview: {e}")

    return [
        SheetPreviewRow(
            sku=row.sku,
            variant_price=float(row.variant_price),
            compare_at_price=float(row.compare_at_price) if row.compare_at_price is not None else None,
            row=row.row
        )
        for row in rows[:PREVIEW_ROWS]
    ]
