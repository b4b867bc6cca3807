"""
pytest configuration and fixtures for the ID Tracker test suite
Every test gets its own JSON file store under tmp_path.
"""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from id_tracker.app import create_app
from id_tracker.config.settings import Settings
from id_tracker.services.json_store import JsonFileRecordStore
from id_tracker.services.key_registry import KeyRegistry
from id_tracker.services.records_service import RecordsService

MASTER_KEY = "secret"
API_KEYS = {"key1": "alice", "key2": "bob"}


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a temporary store, with no key file on disk"""
    return Settings(
        master_key=MASTER_KEY,
        store_path=str(tmp_path / "ids.json"),
        api_keys_file=None,
    )


@pytest.fixture
def key_registry() -> KeyRegistry:
    return KeyRegistry.from_mapping(API_KEYS)


@pytest.fixture
def store(settings) -> JsonFileRecordStore:
    return JsonFileRecordStore(settings.store_path)


@pytest_asyncio.fixture
async def opened_store(store):
    """JSON store with its file created"""
    await store.open()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def records_service(opened_store, key_registry, settings) -> RecordsService:
    return RecordsService(opened_store, key_registry, settings)


@pytest.fixture
def client(settings, store, key_registry):
    """TestClient running the full app (lifespan included)"""
    app = create_app(settings, store=store, key_registry=key_registry)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def master_key() -> str:
    return MASTER_KEY
