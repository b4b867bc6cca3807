"""
Health check API route
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException

from id_tracker.api.dependencies import get_records_service
from id_tracker.services.records_service import RecordsService

router = APIRouter()


@router.get("/health")
async def health_check(service: RecordsService = Depends(get_records_service)):
    """Report whether the record store backend is reachable"""
    if not await service.health():
        raise HTTPException(status_code=503, detail=f"Health check failed: {service.store.backend} store unreachable")

    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "store": service.store.backend
    }
