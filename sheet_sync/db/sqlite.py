"""
SQLite database implementation.
Simple and direct - no abstraction layers.
"""

import aiosqlite
from datetime import datetime
from typing import List, Optional
import os

from .models import (
    Store, GoogleSheet, SyncSession, SyncLog, SessionStatus, LogStatus
)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp, dropping timezone info to avoid comparison issues."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None)
    return parsed


def _to_db_value(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (SessionStatus, LogStatus)):
        return value.value
    if isinstance(value, bool):
        return int(value)
    return value


class SQLiteDatabase:
    """SQLite database for all operations."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
        return self._connection

    async def initialize(self) -> None:
        """Create database tables."""
        conn = await self._get_connection()

        await conn.executescript("""
            CREATE TABLE IF NOT EXISTS stores (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                shopify_url TEXT NOT NULL,
                access_token TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS google_sheets (
                id TEXT PRIMARY KEY,
                store_id TEXT NOT NULL,
                sheet_id TEXT NOT NULL,
                sheet_name TEXT NOT NULL DEFAULT 'Sheet1',
                service_account_json TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                FOREIGN KEY (store_id) REFERENCES stores(id)
            );

            CREATE TABLE IF NOT EXISTS sync_sessions (
                id TEXT PRIMARY KEY,
                store_id TEXT NOT NULL,
                sheet_id TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'running',
                total_skus INTEGER NOT NULL DEFAULT 0,
                processed_skus INTEGER NOT NULL DEFAULT 0,
                updated_skus INTEGER NOT NULL DEFAULT 0,
                not_found_skus INTEGER NOT NULL DEFAULT 0,
                error_count INTEGER NOT NULL DEFAULT 0,
                started_at TEXT NOT NULL,
                completed_at TEXT,
                FOREIGN KEY (store_id) REFERENCES stores(id),
                FOREIGN KEY (sheet_id) REFERENCES google_sheets(id)
            );

            CREATE TABLE IF NOT EXISTS sync_logs (
                id TEXT PRIMARY KEY,
                session_id TEXT NOT NULL,
                sku TEXT NOT NULL,
                status TEXT NOT NULL,
                old_price TEXT,
                new_price TEXT,
                old_compare_price TEXT,
                new_compare_price TEXT,
                error_message TEXT,
                shopify_variant_id TEXT,
                timestamp TEXT NOT NULL,
                FOREIGN KEY (session_id) REFERENCES sync_sessions(id)
            );

            CREATE INDEX IF NOT EXISTS idx_google_sheets_store_id ON google_sheets(store_id);
            CREATE INDEX IF NOT EXISTS idx_sync_sessions_store_status ON sync_sessions(store_id, status);
            CREATE INDEX IF NOT EXISTS idx_sync_sessions_started_at ON sync_sessions(started_at DESC);
            CREATE INDEX IF NOT EXISTS idx_sync_logs_session_id ON sync_logs(session_id);
            CREATE INDEX IF NOT EXISTS idx_sync_logs_timestamp ON sync_logs(timestamp DESC);
        """)
        await conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    # ===== Helper Methods =====

    def _row_to_store(self, row: aiosqlite.Row) -> Store:
        return Store(
            id=row["id"],
            name=row["name"],
            shopify_url=row["shopify_url"],
            access_token=row["access_token"],
            is_active=bool(row["is_active"]),
            created_at=_parse_datetime(row["created_at"])
        )

    def _row_to_sheet(self, row: aiosqlite.Row) -> GoogleSheet:
        return GoogleSheet(
            id=row["id"],
            store_id=row["store_id"],
            sheet_id=row["sheet_id"],
            sheet_name=row["sheet_name"],
            service_account_json=row["service_account_json"],
            is_active=bool(row["is_active"]),
            created_at=_parse_datetime(row["created_at"])
        )

    def _row_to_session(self, row: aiosqlite.Row) -> SyncSession:
        return SyncSession(
            id=row["id"],
            store_id=row["store_id"],
            sheet_id=row["sheet_id"],
            status=SessionStatus(row["status"]),
            total_skus=row["total_skus"],
            processed_skus=row["processed_skus"],
            updated_skus=row["updated_skus"],
            not_found_skus=row["not_found_skus"],
            error_count=row["error_count"],
            started_at=_parse_datetime(row["started_at"]),
            completed_at=_parse_datetime(row["completed_at"])
        )

    def _row_to_log(self, row: aiosqlite.Row) -> SyncLog:
        return SyncLog(
            id=row["id"],
            session_id=row["session_id"],
            sku=row["sku"],
            status=LogStatus(row["status"]),
            old_price=row["old_price"],
            new_price=row["new_price"],
            old_compare_price=row["old_compare_price"],
            new_compare_price=row["new_compare_price"],
            error_message=row["error_message"],
            shopify_variant_id=row["shopify_variant_id"],
            timestamp=_parse_datetime(row["timestamp"])
        )

    async def _update(self, table: str, fields: set, record_id: str, kwargs: dict) -> None:
        updates = []
        values = []

        for key, value in kwargs.items():
            if key not in fields:
                raise ValueError(f"Unknown {table} field: {key}")
            updates.append(f"{key} = ?")
            values.append(_to_db_value(value))

        values.append(record_id)

        conn = await self._get_connection()
        await conn.execute(f"UPDATE {table} SET {', '.join(updates)} WHERE id = ?", values)
        await conn.commit()

    # ===== Store Operations =====

    async def get_stores(self) -> List[Store]:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM stores WHERE is_active = 1 ORDER BY name")
        rows = await cursor.fetchall()
        return [self._row_to_store(row) for row in rows]

    async def get_store(self, store_id: str) -> Optional[Store]:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM stores WHERE id = ?", (store_id,))
        row = await cursor.fetchone()
        return self._row_to_store(row) if row else None

    async def create_store(self, store: Store) -> Store:
        conn = await self._get_connection()
        await conn.execute(
            """
            INSERT INTO stores (id, name, shopify_url, access_token, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                store.id,
                store.name,
                store.shopify_url,
                store.access_token,
                int(store.is_active),
                store.created_at.isoformat()
            )
        )
        await conn.commit()
        return store

    async def update_store(self, store_id: str, **kwargs) -> Optional[Store]:
        if kwargs:
            await self._update(
                "stores", {"name", "shopify_url", "access_token", "is_active"}, store_id, kwargs
            )
        return await self.get_store(store_id)

    async def delete_store(self, store_id: str) -> bool:
        """Soft delete: the store stays loadable by id for its history."""
        conn = await self._get_connection()
        cursor = await conn.execute("UPDATE stores SET is_active = 0 WHERE id = ?", (store_id,))
        await conn.commit()
        return cursor.rowcount > 0

    # ===== Google Sheet Operations =====

    async def get_sheets(self, store_id: Optional[str] = None) -> List[GoogleSheet]:
        conn = await self._get_connection()

        query = "SELECT * FROM google_sheets WHERE is_active = 1"
        params = []

        if store_id:
            query += " AND store_id = ?"
            params.append(store_id)

        query += " ORDER BY created_at"

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
        return [self._row_to_sheet(row) for row in rows]

    async def get_sheet(self, sheet_id: str) -> Optional[GoogleSheet]:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM google_sheets WHERE id = ?", (sheet_id,))
        row = await cursor.fetchone()
        return self._row_to_sheet(row) if row else None

    async def create_sheet(self, sheet: GoogleSheet) -> GoogleSheet:
        conn = await self._get_connection()
        await conn.execute(
            """
            INSERT INTO google_sheets (id, store_id, sheet_id, sheet_name,
                                       service_account_json, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                sheet.id,
                sheet.store_id,
                sheet.sheet_id,
                sheet.sheet_name,
                sheet.service_account_json,
                int(sheet.is_active),
                sheet.created_at.isoformat()
            )
        )
        await conn.commit()
        return sheet

    async def update_sheet(self, sheet_id: str, **kwargs) -> Optional[GoogleSheet]:
        if kwargs:
            await self._update(
                "google_sheets",
                {"sheet_id", "sheet_name", "service_account_json", "is_active"},
                sheet_id,
                kwargs
            )
        return await self.get_sheet(sheet_id)

    async def delete_sheet(self, sheet_id: str) -> bool:
        conn = await self._get_connection()
        cursor = await conn.execute(
            "UPDATE google_sheets SET is_active = 0 WHERE id = ?", (sheet_id,)
        )
        await conn.commit()
        return cursor.rowcount > 0

    # ===== Sync Session Operations =====

    async def get_sessions(self, store_id: Optional[str] = None, limit: int = 50) -> List[SyncSession]:
        conn = await self._get_connection()

        query = "SELECT * FROM sync_sessions WHERE 1=1"
        params = []

        if store_id:
            query += " AND store_id = ?"
            params.append(store_id)

        query += " ORDER BY started_at DESC LIMIT ?"
        params.append(limit)

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
        return [self._row_to_session(row) for row in rows]

    async def get_session(self, session_id: str) -> Optional[SyncSession]:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM sync_sessions WHERE id = ?", (session_id,))
        row = await cursor.fetchone()
        return self._row_to_session(row) if row else None

    async def get_current_session(self, store_id: str) -> Optional[SyncSession]:
        """Latest session of the store that is still marked running."""
        conn = await self._get_connection()
        cursor = await conn.execute(
            """
            SELECT * FROM sync_sessions
            WHERE store_id = ? AND status = ?
            ORDER BY started_at DESC LIMIT 1
            """,
            (store_id, SessionStatus.RUNNING.value)
        )
        row = await cursor.fetchone()
        return self._row_to_session(row) if row else None

    async def create_session(self, session: SyncSession) -> SyncSession:
        conn = await self._get_connection()
        await conn.execute(
            """
            INSERT INTO sync_sessions (id, store_id, sheet_id, status, total_skus,
                                       processed_skus, updated_skus, not_found_skus,
                                       error_count, started_at, completed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                session.id, session.store_id, session.sheet_id, session.status.value,
                session.total_skus, session.processed_skus, session.updated_skus,
                session.not_found_skus, session.error_count, session.started_at.isoformat(),
                session.completed_at.isoformat() if session.completed_at else None
            )
        )
        await conn.commit()
        return session

    async def update_session(self, session_id: str, **kwargs) -> Optional[SyncSession]:
        if kwargs:
            await self._update(
                "sync_sessions",
                {
                    "status", "total_skus", "processed_skus", "updated_skus",
                    "not_found_skus", "error_count", "completed_at"
                },
                session_id,
                kwargs
            )
        return await self.get_session(session_id)

    async def finish_session(
        self,
        session_id: str,
        status: SessionStatus,
        completed_at: Optional[datetime] = None
    ) -> bool:
        """
        Move a running session to a terminal status.

        Only a session still marked running is changed, so the first
        terminal write wins and repeating it is a no-op.

        Returns:
            True if this call finalized the session
        """
        conn = await self._get_connection()
        cursor = await conn.execute(
            "UPDATE sync_sessions SET status = ?, completed_at = ? WHERE id = ? AND status = ?",
            (
                status.value,
                (completed_at or datetime.utcnow()).isoformat(),
                session_id,
                SessionStatus.RUNNING.value
            )
        )
        await conn.commit()
        return cursor.rowcount > 0

    # ===== Sync Log Operations =====

    async def create_log(self, log: SyncLog) -> SyncLog:
        conn = await self._get_connection()
        await conn.execute(
            """
            INSERT INTO sync_logs (id, session_id, sku, status, old_price, new_price,
                                   old_compare_price, new_compare_price, error_message,
                                   shopify_variant_id, timestamp)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                log.id, log.session_id, log.sku, log.status.value, log.old_price,
                log.new_price, log.old_compare_price, log.new_compare_price,
                log.error_message, log.shopify_variant_id, log.timestamp.isoformat()
            )
        )
        await conn.commit()
        return log

    async def get_session_logs(self, session_id: str, limit: int = 100) -> List[SyncLog]:
        """Logs of one session, newest first."""
        conn = await self._get_connection()
        cursor = await conn.execute(
            """
            SELECT * FROM sync_logs WHERE session_id = ?
            ORDER BY timestamp DESC, rowid DESC LIMIT ?
            """,
            (session_id, limit)
        )
        rows = await cursor.fetchall()
        return [self._row_to_log(row) for row in rows]

    async def get_recent_logs(self, limit: int = 50) -> List[SyncLog]:
        """Newest logs across all sessions, for live activity backfill."""
        conn = await self._get_connection()
        cursor = await conn.execute(
            "SELECT * FROM sync_logs ORDER BY timestamp DESC, rowid DESC LIMIT ?",
            (limit,)
        )
        rows = await cursor.fetchall()
        return [self._row_to_log(row) for row in rows]
