"""
Database package - SQLite only.
"""

from .models import (
    Store, StoreCreate, StoreUpdate, StorePublic,
    GoogleSheet, GoogleSheetCreate, GoogleSheetUpdate, GoogleSheetPublic,
    SyncSession, SyncLog, SessionStatus, LogStatus,
    generate_uuid, normalize_shop_url
)
from .sqlite import SQLiteDatabase

__all__ = [
    "SQLiteDatabase",
    "Store",
    "StoreCreate",
    "StoreUpdate",
    "StorePublic",
    "GoogleSheet",
    "GoogleSheetCreate",
    "GoogleSheetUpdate",
    "GoogleSheetPublic",
    "SyncSession",
    "SyncLog",
    "SessionStatus",
    "LogStatus",
    "generate_uuid",
    "normalize_shop_url",
]
