"""
Health Check Routes
System status and diagnostics
"""
import logging
from fastapi import APIRouter

from salesync.core.dependencies import get_sync_lock
from salesync.models.schemas.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=VERSION, sync_running=get_sync_lock().locked())


@router.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "SaleSync POS Sales Uploader",
        "version": VERSION,
        "description": "Uploads unuploaded POS sales from customer site databases to tenant sales APIs",
        "endpoints": {
            "health": "/health",
            "sync": "/api/v1/sync/sales",
        }
    }
