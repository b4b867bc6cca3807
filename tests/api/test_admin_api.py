"""
Admin page, health check and key registry reload
"""

import json

import pytest
from fastapi.testclient import TestClient

from id_tracker.app import create_app
from id_tracker.services.key_registry import KeyRegistry


def test_admin_page_served(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "/api/list-full" in response.text


def test_health_reports_store(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["store"] == "json"


def test_unknown_route_uses_error_body(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_reload_keys(settings, store, tmp_path, master_key):
    keys_file = tmp_path / "keys.json"
    keys_file.write_text(json.dumps({"keys": [{"key": "k1", "user": "alice"}]}), encoding="utf-8")
    registry = KeyRegistry(str(keys_file))
    app = create_app(settings, store=store, key_registry=registry)

    with TestClient(app) as client:
        assert client.post("/api/add-id", json={"id": "A", "apiKey": "k2"}).status_code == 403

        keys_file.write_text(
            json.dumps({"keys": [{"key": "k1", "user": "alice"}, {"key": "k2", "user": "bob"}]}),
            encoding="utf-8",
        )
        assert client.post("/api/reload-keys", json={"masterKey": "wrong"}).status_code == 403

        response = client.post("/api/reload-keys", json={"masterKey": master_key})
        assert response.json() == {"success": True, "keys": 2}

        assert client.post("/api/add-id", json={"id": "A", "apiKey": "k2"}).status_code == 200
        items = client.get("/api/list-full").json()["items"]
        assert items[0]["added_by"] == "bob"


def test_reload_keys_with_broken_file_is_400(settings, store, tmp_path, master_key):
    keys_file = tmp_path / "keys.json"
    keys_file.write_text(json.dumps({"keys": [{"key": "k1", "user": "alice"}]}), encoding="utf-8")
    app = create_app(settings, store=store, key_registry=KeyRegistry(str(keys_file)))

    with TestClient(app) as client:
        keys_file.write_text("{broken", encoding="utf-8")

        response = client.post("/api/reload-keys", headers={"X-Master-Key": master_key})
        assert response.status_code == 400
        assert client.post("/api/add-id", json={"id": "A", "apiKey": "k1"}).status_code == 200


def test_create_app_rejects_invalid_settings(settings, store, key_registry):
    settings.conflict_policy = "bogus"

    with pytest.raises(ValueError, match="CONFLICT_POLICY"):
        create_app(settings, store=store, key_registry=key_registry)
