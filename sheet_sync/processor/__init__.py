"""
Processor package for sync operations.
"""

from .broadcast import Broadcaster, EventSink, WebSocketSink
from .events import (
    LogEntry,
    SyncProgressEvent,
    SyncLogEvent,
    SyncCompleteEvent,
    SyncErrorEvent,
)
from .registry import RunRegistry
from .sync import (
    SyncOrchestrator,
    SyncProgress,
    SyncError,
    SyncAlreadyRunning,
    SyncNotFound,
    create_shopify_client,
    create_sheets_client,
)

__all__ = [
    "Broadcaster",
    "EventSink",
    "WebSocketSink",
    "LogEntry",
    "SyncProgressEvent",
    "SyncLogEvent",
    "SyncCompleteEvent",
    "SyncErrorEvent",
    "RunRegistry",
    "SyncOrchestrator",
    "SyncProgress",
    "SyncError",
    "SyncAlreadyRunning",
    "SyncNotFound",
    "create_shopify_client",
    "create_sheets_client",
]
