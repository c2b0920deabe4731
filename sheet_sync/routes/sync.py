"""
Sync control and history API routes.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ..dependencies import get_db, get_orchestrator, require_auth
from ..db import SyncSession, SyncLog
from ..processor import SyncAlreadyRunning, SyncNotFound, SyncProgress

router = APIRouter(prefix="/api/sync", dependencies=[Depends(require_auth)])


class StartSyncRequest(BaseModel):
    store_id: str
    sheet_id: str


class StoreRequest(BaseModel):
    store_id: str


class StartSyncResponse(BaseModel):
    session_id: str


@router.post("/start", response_model=StartSyncResponse)
async def start_sync(body: StartSyncRequest):
    """Start a sync; returns as soon as the session is created."""
    try:
        session_id = await get_orchestrator().start_sync(body.store_id, body.sheet_id)
    except SyncAlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SyncNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    return StartSyncResponse(session_id=session_id)


@router.post("/stop")
async def stop_sync(body: StoreRequest):
    await get_orchestrator().stop_sync(body.store_id)
    return {"success": True}


@router.post("/clear")
async def clear_session(body: StoreRequest):
    await get_orchestrator().clear_session(body.store_id)
    return {"success": True}


@router.get("/status/{store_id}", response_model=Optional[SyncProgress])
async def get_sync_status(store_id: str):
    return await get_orchestrator().get_sync_status(store_id)


@router.get("/sessions", response_model=List[SyncSession])
async def list_sessions(store_id: Optional[str] = Query(None)):
    """Recent sessions, newest first."""
    return await get_db().get_sessions(store_id)


@router.get("/logs/recent", response_model=List[SyncLog])
async def recent_logs(limit: int = Query(50, ge=1, le=500)):
    """Latest row results across all sessions, for the live feed backfill."""
    return await get_db().get_recent_logs(limit)


@router.get("/logs/{session_id}", response_model=List[SyncLog])
async def session_logs(session_id: str, limit: int = Query(100, ge=1, le=1000)):
    return await get_db().get_session_logs(session_id, limit)
