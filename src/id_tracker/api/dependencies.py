"""
FastAPI dependencies that hand request handlers the objects built at startup
"""

from fastapi import Request

from id_tracker.services.key_registry import KeyRegistry
from id_tracker.services.records_service import RecordsService
from id_tracker.utils.auth import AccessControl


def get_records_service(request: Request) -> RecordsService:
    return request.app.state.records_service


def get_access_control(request: Request) -> AccessControl:
    return request.app.state.access_control


def get_key_registry(request: Request) -> KeyRegistry:
    return request.app.state.key_registry
