"""
Admin page and key registry management routes
"""

import logging
from pathlib import Path
from typing import Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from id_tracker.api.dependencies import get_access_control, get_key_registry
from id_tracker.models.record import MasterKeyRequest
from id_tracker.services.key_registry import KeyRegistry, KeyRegistryError
from id_tracker.utils.auth import AccessControl
from id_tracker.utils.exceptions import ValidationError

router = APIRouter()
logger = logging.getLogger(__name__)

ADMIN_PAGE = Path(__file__).resolve().parent.parent.parent / "static" / "admin.html"


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def admin_page():
    """Serve the record management page"""
    return HTMLResponse(ADMIN_PAGE.read_text(encoding="utf-8"))


@router.post("/api/reload-keys")
async def reload_keys(
    request: Request,
    payload: Optional[MasterKeyRequest] = None,
    key_registry: KeyRegistry = Depends(get_key_registry),
    access: AccessControl = Depends(get_access_control)
):
    """Re-read the API key registry from its sources"""
    access.require_master(request, payload.master_key if payload else None)
    try:
        count = key_registry.reload()
    except KeyRegistryError as e:
        raise ValidationError(f"Key registry not reloaded: {e}")
    return {"success": True, "keys": count}
