"""
Tests for the HTTP API: auth gate, store and sheet configuration, sync control.
"""

import pytest
from fastapi.testclient import TestClient

from sheet_sync.auth import hash_password
from sheet_sync.config import settings
from sheet_sync.main import app
from sheet_sync.routes import auth as auth_routes

PASSWORD = "correct horse"


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "database_path", str(tmp_path / "api.db"))
    monkeypatch.setattr(settings, "admin_password_hash", hash_password(PASSWORD))
    auth_routes.failed_attempts.clear()

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def logged_in(client):
    response = client.post("/api/auth/login", json={"password": PASSWORD})
    assert response.status_code == 200
    return client


def create_store(client, **overrides):
    payload = {
        "name": "Main",
        "shopify_url": "https://main-store.myshopify.com/",
        "access_token": "shpat_secret",
    }
    payload.update(overrides)
    response = client.post("/api/stores", json=payload)
    assert response.status_code == 200
    return response.json()


class TestAuth:

    def test_health_is_public(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_api_requires_session(self, client):
        assert client.get("/api/stores").status_code == 401
        assert client.post("/api/sync/stop", json={"store_id": "x"}).status_code == 401

    def test_wrong_password(self, client):
        response = client.post("/api/auth/login", json={"password": "nope"})

        assert response.status_code == 401
        assert client.get("/api/stores").status_code == 401

    def test_logout_ends_session(self, logged_in):
        assert logged_in.get("/api/stores").status_code == 200

        logged_in.post("/api/auth/logout")

        assert logged_in.get("/api/stores").status_code == 401


class TestStoresApi:

    def test_create_hides_token_and_normalizes_url(self, logged_in):
        store = create_store(logged_in)

        assert store["shopify_url"] == "main-store.myshopify.com"
        assert "access_token" not in store
        assert [s["id"] for s in logged_in.get("/api/stores").json()] == [store["id"]]

    def test_blank_fields_rejected(self, logged_in):
        response = logged_in.post(
            "/api/stores", json={"name": " ", "shopify_url": "x", "access_token": "y"}
        )
        assert response.status_code == 400

    def test_delete_removes_from_listing(self, logged_in):
        store = create_store(logged_in)

        assert logged_in.delete(f"/api/stores/{store['id']}").json() == {"success": True}
        assert logged_in.get("/api/stores").json() == []
        assert logged_in.delete("/api/stores/unknown").status_code == 404


class TestSheetsApi:

    def test_credentials_are_not_returned(self, logged_in):
        store = create_store(logged_in)

        response = logged_in.post("/api/sheets", json={
            "store_id": store["id"],
            "sheet_id": "spreadsheet-1",
            "sheet_name": "Prices",
            "service_account_json": '{"type": "service_account"}',
        })

        assert response.status_code == 200
        sheet = response.json()
        assert sheet["has_credentials"] is True
        assert "service_account_json" not in sheet

        listed = logged_in.get("/api/sheets", params={"store_id": store["id"]}).json()
        assert [s["id"] for s in listed] == [sheet["id"]]

    def test_sheet_needs_existing_store(self, logged_in):
        response = logged_in.post("/api/sheets", json={"store_id": "missing", "sheet_id": "s"})
        assert response.status_code == 404


class TestSyncApi:

    def test_start_with_unknown_sheet(self, logged_in):
        store = create_store(logged_in)

        response = logged_in.post(
            "/api/sync/start", json={"store_id": store["id"], "sheet_id": "missing"}
        )

        assert response.status_code == 404
        assert logged_in.get("/api/sync/sessions").json() == []

    def test_idle_store_has_no_status(self, logged_in):
        store = create_store(logged_in)

        response = logged_in.get(f"/api/sync/status/{store['id']}")

        assert response.status_code == 200
        assert response.json() is None

    def test_stop_and_clear_when_idle(self, logged_in):
        store = create_store(logged_in)

        assert logged_in.post("/api/sync/stop", json={"store_id": store["id"]}).json() == {"success": True}
        assert logged_in.post("/api/sync/clear", json={"store_id": store["id"]}).json() == {"success": True}

    def test_recent_logs_empty(self, logged_in):
        assert logged_in.get("/api/sync/logs/recent").json() == []
