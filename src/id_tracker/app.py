"""
ID Tracker API Server
Collects identifiers submitted by the browser extension and serves the admin page.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from id_tracker.config.settings import Settings, get_settings
from id_tracker.api.routes import admin, health, records, transfer
from id_tracker.services.json_store import JsonFileRecordStore
from id_tracker.services.key_registry import KeyRegistry
from id_tracker.services.postgres_store import PostgresRecordStore
from id_tracker.services.record_store import RecordStore
from id_tracker.services.records_service import RecordsService
from id_tracker.utils.auth import AccessControl
from id_tracker.utils.error_handling import setup_error_handling

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> RecordStore:
    """Pick the storage backend from the configuration"""
    if settings.database_url:
        return PostgresRecordStore(settings.database_url)
    return JsonFileRecordStore(settings.store_path)


def build_key_registry(settings: Settings) -> KeyRegistry:
    return KeyRegistry(
        file_path=settings.api_keys_file,
        inline_json=settings.api_keys_json,
        poll_interval=settings.keys_poll_interval,
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    key_registry: Optional[KeyRegistry] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Settings are validated and the key registry is loaded here, so a bad
    configuration fails before the server starts listening. The store is
    opened in the lifespan and closed on shutdown.
    """
    settings = settings or get_settings()
    errors = settings.validate()
    if errors:
        raise ValueError(f"Configuration errors: {'; '.join(errors)}")
    store = store or build_store(settings)
    key_registry = key_registry or build_key_registry(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        await store.open()
        app.state.settings = settings
        app.state.key_registry = key_registry
        app.state.access_control = AccessControl(settings.master_key)
        app.state.records_service = RecordsService(store, key_registry, settings)
        logger.info(f"ID Tracker ready ({store.backend} store, {len(key_registry)} API keys)")
        try:
            yield
        finally:
            await store.close()

    app = FastAPI(
        title="ID Tracker",
        description="Identifier collection service with an administrative record page",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials="*" not in settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    setup_error_handling(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(admin.router, tags=["Admin"])
    app.include_router(records.router, prefix="/api", tags=["Records"])
    app.include_router(transfer.router, prefix="/api", tags=["Transfer"])

    return app
