"""Tests for the SQLite storage layer."""

from datetime import datetime, timedelta

import pytest

from sheet_sync.db import GoogleSheet, LogStatus, SessionStatus, Store, SyncLog, SyncSession


class TestStores:

    @pytest.mark.asyncio
    async def test_soft_delete_hides_store_from_listing(self, db, store):
        assert [s.id for s in await db.get_stores()] == [store.id]

        assert await db.delete_store(store.id) is True

        assert await db.get_stores() == []
        deleted = await db.get_store(store.id)
        assert deleted is not None
        assert deleted.is_active is False

    @pytest.mark.asyncio
    async def test_update_store(self, db, store):
        updated = await db.update_store(store.id, name="Renamed", access_token="shpat_new")

        assert updated.name == "Renamed"
        assert updated.access_token == "shpat_new"
        assert updated.shopify_url == store.shopify_url

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_field(self, db, store):
        with pytest.raises(ValueError):
            await db.update_store(store.id, created_at=datetime.utcnow())


class TestSheets:

    @pytest.mark.asyncio
    async def test_sheets_filtered_by_store(self, db, store, sheet):
        other = await db.create_store(Store(name="Other", shopify_url="o.myshopify.com", access_token="t"))
        await db.create_sheet(GoogleSheet(store_id=other.id, sheet_id="x"))

        sheets = await db.get_sheets(store.id)

        assert [s.id for s in sheets] == [sheet.id]
        assert sheets[0].sheet_name == "Prices"
        assert len(await db.get_sheets()) == 2


class TestSessions:

    @pytest.mark.asyncio
    async def test_current_session_is_latest_running(self, db, store, sheet):
        old = await db.create_session(SyncSession(
            store_id=store.id, sheet_id=sheet.id,
            started_at=datetime.utcnow() - timedelta(hours=1)
        ))
        await db.finish_session(old.id, SessionStatus.COMPLETED)
        running = await db.create_session(SyncSession(store_id=store.id, sheet_id=sheet.id))

        current = await db.get_current_session(store.id)

        assert current.id == running.id
        assert current.status == SessionStatus.RUNNING

    @pytest.mark.asyncio
    async def test_no_current_session(self, db, store):
        assert await db.get_current_session(store.id) is None

    @pytest.mark.asyncio
    async def test_first_terminal_write_wins(self, db, store, sheet):
        session = await db.create_session(SyncSession(store_id=store.id, sheet_id=sheet.id))

        assert await db.finish_session(session.id, SessionStatus.STOPPED) is True
        assert await db.finish_session(session.id, SessionStatus.COMPLETED) is False
        assert await db.finish_session(session.id, SessionStatus.STOPPED) is False

        finished = await db.get_session(session.id)
        assert finished.status == SessionStatus.STOPPED
        assert finished.completed_at is not None

    @pytest.mark.asyncio
    async def test_update_counters(self, db, store, sheet):
        session = await db.create_session(SyncSession(store_id=store.id, sheet_id=sheet.id))

        updated = await db.update_session(session.id, total_skus=3, processed_skus=1, updated_skus=1)

        assert (updated.total_skus, updated.processed_skus, updated.updated_skus) == (3, 1, 1)
        assert updated.not_found_skus == 0

    @pytest.mark.asyncio
    async def test_sessions_newest_first(self, db, store, sheet):
        first = await db.create_session(SyncSession(
            store_id=store.id, sheet_id=sheet.id,
            started_at=datetime.utcnow() - timedelta(minutes=5)
        ))
        second = await db.create_session(SyncSession(store_id=store.id, sheet_id=sheet.id))

        assert [s.id for s in await db.get_sessions(store.id)] == [second.id, first.id]


class TestLogs:

    @pytest.mark.asyncio
    async def test_recent_logs_across_sessions(self, db, store, sheet):
        first = await db.create_session(SyncSession(store_id=store.id, sheet_id=sheet.id))
        second = await db.create_session(SyncSession(store_id=store.id, sheet_id=sheet.id))

        await db.create_log(SyncLog(session_id=first.id, sku="A", status=LogStatus.SUCCESS, new_price="1.00"))
        await db.create_log(SyncLog(session_id=second.id, sku="B", status=LogStatus.NOT_FOUND))
        await db.create_log(SyncLog(session_id=second.id, sku="C", status=LogStatus.ERROR, error_message="boom"))

        recent = await db.get_recent_logs(2)
        assert [log.sku for log in recent] == ["C", "B"]
        assert recent[0].error_message == "boom"

        session_logs = await db.get_session_logs(first.id)
        assert [log.sku for log in session_logs] == ["A"]
        assert session_logs[0].new_price == "1.00"
