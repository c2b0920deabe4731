"""
Progress events broadcast to live subscribers.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..db import LogStatus


class SyncProgressEvent(BaseModel):
    """Sent before each row is processed."""
    type: Literal["sync_progress"] = "sync_progress"
    session_id: str
    store_id: str
    current_sku: str
    processed_skus: int
    total_skus: int


class LogEntry(BaseModel):
    """Outcome of one row, as shown in the live activity feed."""
    sku: str
    status: LogStatus
    old_price: Optional[str] = None
    new_price: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class SyncLogEvent(BaseModel):
    type: Literal["sync_log"] = "sync_log"
    session_id: str
    store_id: str
    log: LogEntry


class SyncCompleteEvent(BaseModel):
    """Run finished or was stopped; also sent on clear with no session."""
    type: Literal["sync_complete"] = "sync_complete"
    session_id: Optional[str] = None
    store_id: str


class SyncErrorEvent(BaseModel):
    """Run failed before or outside the per-row loop."""
    type: Literal["sync_error"] = "sync_error"
    session_id: str
    store_id: str
    error: str
