"""
Export / import API routes
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import Response

from id_tracker.api.dependencies import get_access_control, get_records_service
from id_tracker.services.records_service import RecordsService
from id_tracker.utils.auth import AccessControl
from id_tracker.utils.exceptions import ValidationError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/export")
async def export_records(
    request: Request,
    export_format: str = Query("json", alias="format"),
    service: RecordsService = Depends(get_records_service),
    access: AccessControl = Depends(get_access_control)
):
    """Download every record as a JSON or CSV attachment"""
    access.require_master(request)
    export_format = export_format.lower()
    body, media_type = await service.export(export_format)
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename=ids_export.{export_format}"}
    )


@router.post("/import")
async def import_records(
    request: Request,
    file: Optional[UploadFile] = File(None),
    master_key: Optional[str] = Form(None, alias="masterKey"),
    service: RecordsService = Depends(get_records_service),
    access: AccessControl = Depends(get_access_control)
):
    """Import records from an uploaded JSON or CSV file"""
    access.require_master(request, master_key)
    if file is None:
        raise ValidationError("File not received")

    try:
        # One byte past the cap is enough to reject oversized uploads
        content = await file.read(service.settings.max_import_bytes + 1)
    finally:
        await file.close()

    summary = await service.import_file(content, file.filename, file.content_type)
    return {"success": True, **summary.model_dump()}
