"""
Sheet Price Sync - Main Application

JSON API for store and sheet configuration, sync control and history,
plus a WebSocket feed of live sync progress.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .dependencies import init_dependencies, close_dependencies, get_orchestrator
from .routes import auth_router, stores_router, sheets_router, sync_router, events_router

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# httpx logs every request at INFO; a sync makes one per row
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Sheet Price Sync (database: {settings.database_path})")
    await init_dependencies()
    logger.info(
        f"Throttling: shopify={settings.shopify_request_delay}s, "
        f"sheets={settings.sheets_request_delay}s, row={settings.row_delay}s"
    )
    yield

    running = get_orchestrator().registry.running_stores()
    if running:
        logger.warning(f"Shutting down with {len(running)} sync(s) still running")
    await close_dependencies()


app = FastAPI(
    title="Sheet Price Sync",
    description="Push prices from Google Sheets to Shopify variants by SKU",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(auth_router)
app.include_router(stores_router)
app.include_router(sheets_router)
app.include_router(sync_router)
app.include_router(events_router)


@app.get("/health")
async def health():
    """Health check endpoint (no auth required)."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("sheet_sync.main:app", host=settings.host, port=settings.port)
