"""
Record API routes: submission, listing, search, notes and deletion
All storage goes through RecordsService; domain errors are turned into
JSON responses by the centralized handlers.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request

from id_tracker.api.dependencies import get_access_control, get_records_service
from id_tracker.models.record import (
    AddIdRequest,
    DeleteManyRequest,
    DeleteRequest,
    ManualAddRequest,
    MasterKeyRequest,
    NoteUpdateRequest,
    RecordListResponse,
    RecordSearchResponse,
)
from id_tracker.services.records_service import RecordsService
from id_tracker.utils.auth import AccessControl, extract_api_key
from id_tracker.utils.exceptions import ValidationError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/list-full", response_model=RecordListResponse)
async def list_full(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    text_filter: Optional[str] = Query(None, alias="filter"),
    service: RecordsService = Depends(get_records_service)
):
    """Paginated record list, newest first, optionally filtered"""
    page_size = limit if limit is not None else service.settings.default_page_size
    items, total = await service.list_records(page=page, page_size=page_size, text_filter=text_filter)
    return RecordListResponse(items=items, total=total, page=page, limit=page_size)


@router.get("/search", response_model=RecordSearchResponse)
async def search(
    query: Optional[str] = Query(None),
    service: RecordsService = Depends(get_records_service)
):
    """Substring search over id, submitter and note"""
    items = await service.search(query)
    return RecordSearchResponse(items=items)


@router.get("/highlight-list")
async def highlight_list(service: RecordsService = Depends(get_records_service)):
    """Plain id list for the browser extension"""
    return {"ids": await service.highlight_ids()}


@router.post("/add-id")
async def add_id(
    payload: AddIdRequest,
    request: Request,
    service: RecordsService = Depends(get_records_service)
):
    """Add one id (``id``) or several (``ids``) with an API key"""
    api_key = extract_api_key(request, payload.api_key)

    if payload.ids is not None and not payload.id:
        added, total = await service.submit_many(payload.ids, api_key)
        return {"success": True, "added": added, "total": total}

    result = await service.submit(payload.id, api_key)
    return {"success": True, "created": result.created}


@router.post("/add-manual")
async def add_manual(
    payload: ManualAddRequest,
    request: Request,
    service: RecordsService = Depends(get_records_service),
    access: AccessControl = Depends(get_access_control)
):
    """Add an id from the admin page"""
    access.require_master(request, payload.master_key)
    result = await service.add_manual(payload.id, payload.note)
    return {"success": True, "created": result.created}


@router.post("/note")
@router.post("/update-note")
async def update_note(
    payload: NoteUpdateRequest,
    request: Request,
    service: RecordsService = Depends(get_records_service),
    access: AccessControl = Depends(get_access_control)
):
    """Overwrite the note of a record"""
    access.require_master(request, payload.master_key)
    await service.update_note(payload.id, payload.note)
    return {"success": True}


@router.post("/delete")
async def delete_one(
    payload: DeleteRequest,
    request: Request,
    service: RecordsService = Depends(get_records_service),
    access: AccessControl = Depends(get_access_control)
):
    """Delete a single record"""
    access.require_master(request, payload.master_key)
    if not payload.id:
        raise ValidationError("ID missing")
    deleted = await service.delete_many([payload.id])
    return {"success": True, "deleted": deleted}


@router.post("/delete-multiple")
async def delete_multiple(
    payload: DeleteManyRequest,
    request: Request,
    service: RecordsService = Depends(get_records_service),
    access: AccessControl = Depends(get_access_control)
):
    """Delete every listed id; unknown ids are ignored"""
    access.require_master(request, payload.master_key)
    deleted = await service.delete_many(payload.ids)
    return {"success": True, "deleted": deleted}


@router.post("/clear-all")
@router.post("/clear")
async def clear_all(
    request: Request,
    payload: Optional[MasterKeyRequest] = None,
    service: RecordsService = Depends(get_records_service),
    access: AccessControl = Depends(get_access_control)
):
    """Delete every record"""
    access.require_master(request, payload.master_key if payload else None)
    deleted = await service.clear_all()
    return {"success": True, "deleted": deleted}
