"""
Store management routes.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_db, require_auth
from ..db import Store, StoreCreate, StoreUpdate, StorePublic, normalize_shop_url
from ..shopify import ShopifyClient

router = APIRouter(prefix="/api/stores", dependencies=[Depends(require_auth)])


def _public(store: Store) -> StorePublic:
    return StorePublic(**store.model_dump(exclude={"access_token"}))


async def _get_store_or_404(store_id: str) -> Store:
    store = await get_db().get_store(store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")
    return store


@router.get("", response_model=List[StorePublic])
async def list_stores():
    """List active stores."""
    stores = await get_db().get_stores()
    return [_public(store) for store in stores]


@router.post("", response_model=StorePublic)
async def create_store(body: StoreCreate):
    if not body.name.strip() or not body.shopify_url.strip() or not body.access_token.strip():
        raise HTTPException(status_code=400, detail="All fields are required")

    store = Store(
        name=body.name.strip(),
        shopify_url=normalize_shop_url(body.shopify_url),
        access_token=body.access_token.strip()
    )
    await get_db().create_store(store)
    return _public(store)


@router.get("/{store_id}", response_model=StorePublic)
async def get_store(store_id: str):
    return _public(await _get_store_or_404(store_id))


@router.put("/{store_id}", response_model=StorePublic)
async def update_store(store_id: str, body: StoreUpdate):
    await _get_store_or_404(store_id)

    update_data = body.model_dump(exclude_none=True)
    if "shopify_url" in update_data:
        update_data["shopify_url"] = normalize_shop_url(update_data["shopify_url"])

    # Only update token if provided
    if "access_token" in update_data:
        token = update_data["access_token"].strip()
        if token:
            update_data["access_token"] = token
        else:
            del update_data["access_token"]

    store = await get_db().update_store(store_id, **update_data)
    return _public(store)


@router.delete("/{store_id}")
async def delete_store(store_id: str):
    await _get_store_or_404(store_id)
    await get_db().delete_store(store_id)
    return {"success": True}


@router.post("/{store_id}/test-connection")
async def test_connection(store_id: str):
    """Check the store's Shopify credentials."""
    store = await _get_store_or_404(store_id)

    async with ShopifyClient(store.shopify_url, store.access_token) as client:
        connected = await client.test_connection()

    return {"connected": connected}
